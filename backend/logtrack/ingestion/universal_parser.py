"""
Universal log parser that auto-detects log format and dispatches to appropriate parser.
"""
import re
import logging
from typing import Callable, Dict, List, NamedTuple, Optional, Union

from logtrack.errors import UnsupportedFormat
from logtrack.schemas import CanonicalEvent, LogFormat
from .apache import parse_apache_log
from .json_logs import parse_json_logs
from .lines import non_blank_lines
from .syslog import parse_syslog
from .unknown import ExternalLogParser, parse_unknown
from .w3c import parse_iis_log, parse_w3c_log

logger = logging.getLogger(__name__)

class ParseOutcome(NamedTuple):
    log_format: LogFormat
    events: List[CanonicalEvent]
    # Lines handed to the external parser, when only a sample was structured
    sampled_lines: Optional[int] = None

class UniversalLogParser:
    """Auto-detects log format and parses accordingly"""

    # Identifier, two placeholders, [timestamp], "request", status, bytes
    APACHE_PATTERN = re.compile(r'^\S+\s+\S+\s+\S+\s+\[.*?\]\s+".*?"\s+\d+\s+\d+')
    # Mon DD HH:MM:SS
    SYSLOG_PATTERN = re.compile(r'^[A-Z][a-z]{2}\s+\d{1,2}\s+\d{2}:\d{2}:\d{2}')
    # YYYY-MM-DD HH:MM:SS at the start of any sampled line
    IIS_LINE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}', re.MULTILINE)

    PARSERS: Dict[LogFormat, Callable[[str], List[CanonicalEvent]]] = {
        LogFormat.APACHE: parse_apache_log,
        LogFormat.NGINX: parse_apache_log,
        LogFormat.JSON: parse_json_logs,
        LogFormat.W3C: parse_w3c_log,
        LogFormat.SYSLOG: parse_syslog,
        LogFormat.IIS: parse_iis_log,
    }

    @classmethod
    def detect_format(cls, text: str, sample_size: int = 5) -> LogFormat:
        """
        Detect log format from the first few non-blank lines.
        Checks run in a fixed order because the patterns overlap; the first
        match wins. Never raises.
        """
        lines = non_blank_lines(text or '', sample_size)
        if not lines:
            return LogFormat.UNKNOWN

        sample = '\n'.join(lines)
        first_line = lines[0].strip()

        if sample.strip().startswith('{') or '{"' in sample:
            return LogFormat.JSON

        if '#Fields:' in sample or '#Software:' in sample:
            return LogFormat.W3C

        if cls.APACHE_PATTERN.match(first_line):
            return LogFormat.APACHE

        if cls.SYSLOG_PATTERN.match(first_line):
            return LogFormat.SYSLOG

        if 'W3SVC' in sample or cls.IIS_LINE_PATTERN.search(sample):
            return LogFormat.IIS

        return LogFormat.UNKNOWN

    @classmethod
    def parse_logs(
        cls,
        text: str,
        format_hint: Optional[Union[LogFormat, str]] = None,
        external_parser: Optional[ExternalLogParser] = None,
        detection_sample_lines: int = 5,
        external_sample_lines: int = 20
    ) -> ParseOutcome:
        """
        Parse logs with auto-detection or format hint.

        Returns:
            The format used, the parsed events and the sample size when the
            external parser structured only part of the input
        """
        if format_hint:
            log_format = resolve_format_hint(format_hint)
            logger.info("Using format hint: %s", log_format.value)
        else:
            log_format = cls.detect_format(text, detection_sample_lines)
            logger.info("Detected format: %s", log_format.value)

        parser = cls.PARSERS.get(log_format)
        if parser is None:
            unknown = parse_unknown(text, external_parser, external_sample_lines)
            return ParseOutcome(log_format, unknown.events, unknown.sampled_lines)

        return ParseOutcome(log_format, parser(text))

def resolve_format_hint(format_hint: Union[LogFormat, str]) -> LogFormat:
    """Case-insensitive format name to LogFormat; raises UnsupportedFormat"""
    if isinstance(format_hint, LogFormat):
        return format_hint
    try:
        return LogFormat(str(format_hint).strip().lower())
    except ValueError:
        raise UnsupportedFormat(format_hint) from None

# Convenience function
def parse_logs_auto(text: str, **kwargs) -> List[CanonicalEvent]:
    """Convenience wrapper for universal parsing"""
    return UniversalLogParser.parse_logs(text, **kwargs).events
