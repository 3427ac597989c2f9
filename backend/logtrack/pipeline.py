"""
Core entry point: raw log text in, canonical events and ranked anomalies out.

Every call is independent: detectors are built per call from the supplied
settings and no state is kept between invocations.
"""
import logging
from typing import List, Optional, Union

from logtrack.config import Settings, settings
from logtrack.errors import InputEmpty, NoParseableLines
from logtrack.schemas import AnalysisResult, AnomalyRecord, CanonicalEvent, LogFormat
from logtrack.ingestion.lines import numbered_lines
from logtrack.ingestion.universal_parser import UniversalLogParser
from logtrack.ingestion.unknown import ExternalLogParser
from logtrack.analysis.statistics import build_stats
from logtrack.analysis.ip_ranking import HighVolumeDetector
from logtrack.analysis.brute_force import FailedAttemptsDetector
from logtrack.analysis.off_hours import OffHoursDetector
from logtrack.analysis.scanner_detection import SuspiciousResourceDetector
from logtrack.analysis.data_exfiltration import LargeTransferDetector
from logtrack.analysis.rapid_requests import RapidRequestDetector
from logtrack.analysis.ranking import rank_anomalies
from logtrack.utils.report_generator import build_summary

logger = logging.getLogger(__name__)

def build_detectors(config: Settings = settings) -> list:
    """The six detection rules, in reporting order"""
    return [
        HighVolumeDetector(
            multiplier_threshold=config.HIGH_VOLUME_MULTIPLIER,
            critical_multiplier=config.HIGH_VOLUME_CRITICAL_MULTIPLIER
        ),
        FailedAttemptsDetector(
            failed_threshold=config.FAILED_ATTEMPTS_THRESHOLD,
            critical_threshold=config.FAILED_ATTEMPTS_CRITICAL
        ),
        OffHoursDetector(
            start_hour=config.OFF_HOURS_START,
            end_hour=config.OFF_HOURS_END,
            threshold=config.OFF_HOURS_THRESHOLD,
            critical_threshold=config.OFF_HOURS_CRITICAL
        ),
        SuspiciousResourceDetector(),
        LargeTransferDetector(
            threshold_bytes=config.LARGE_TRANSFER_THRESHOLD,
            critical_bytes=config.LARGE_TRANSFER_CRITICAL
        ),
        RapidRequestDetector(
            threshold=config.RAPID_REQUEST_THRESHOLD,
            window_seconds=config.RAPID_REQUEST_WINDOW_SECONDS,
            critical_count=config.RAPID_REQUEST_CRITICAL
        ),
    ]

def detect_anomalies(events: List[CanonicalEvent], config: Settings = settings) -> List[AnomalyRecord]:
    """Run all detection rules over the events and rank the findings"""
    if not events:
        return []

    stats = build_stats(events)
    outputs = [detector.detect(events, stats) for detector in build_detectors(config)]
    anomalies = rank_anomalies(outputs)

    logger.info("Found %d anomalies in %d events", len(anomalies), len(events))
    return anomalies

def count_data_lines(text: str, log_format: LogFormat) -> int:
    """Non-blank lines that an extractor could turn into events"""
    if log_format in (LogFormat.W3C, LogFormat.IIS):
        return sum(1 for _, line in numbered_lines(text) if not line.strip().startswith('#'))
    return sum(1 for _ in numbered_lines(text))

def analyze(
    raw_log_text: str,
    external_parser: Optional[ExternalLogParser] = None,
    format_hint: Optional[Union[LogFormat, str]] = None,
    config: Settings = settings
) -> AnalysisResult:
    """
    Parse raw log text and detect anomalies.

    Raises:
        InputEmpty: the text is empty or whitespace only
        NoParseableLines: no line could be turned into an event
        UnsupportedFormat: the format hint names no known format
    """
    if not raw_log_text or not raw_log_text.strip():
        raise InputEmpty()

    outcome = UniversalLogParser.parse_logs(
        raw_log_text,
        format_hint=format_hint,
        external_parser=external_parser,
        detection_sample_lines=config.DETECTION_SAMPLE_LINES,
        external_sample_lines=config.EXTERNAL_SAMPLE_LINES
    )
    log_format, events = outcome.log_format, outcome.events

    total_lines = count_data_lines(raw_log_text, log_format)
    # Lines outside an external parser's sample were never attempted
    attempted_lines = total_lines if outcome.sampled_lines is None else outcome.sampled_lines
    skipped_lines = max(0, attempted_lines - len(events))

    if not events:
        raise NoParseableLines(log_format.value, total_lines, skipped_lines)

    inferred = sum(1 for event in events if event.timestamp_inferred)
    if inferred:
        logger.warning("%d events had unparseable timestamps, current time substituted", inferred)

    anomalies = detect_anomalies(events, config)

    return AnalysisResult(
        detected_format=log_format,
        total_lines=total_lines,
        skipped_lines=skipped_lines,
        sampled_lines=outcome.sampled_lines,
        events=events,
        anomalies=anomalies,
        summary=build_summary(events, anomalies)
    )
