import logging
from typing import List

from logtrack.schemas import CanonicalEvent, UnusualTimeAnomaly
from logtrack.utils.risk import cap_confidence, severity_for
from .statistics import LogStatistics

logger = logging.getLogger(__name__)

# Off-hours volume is scored with a flat confidence
OFF_HOURS_CONFIDENCE = 70

class OffHoursDetector:
    """
    Flags heavy activity during the off-hours window (01:00 - 05:59 by default).
    The per-hour threshold is absolute and does not scale with total volume.
    """

    def __init__(
        self,
        start_hour: int = 1,
        end_hour: int = 5,
        threshold: int = 50,
        critical_threshold: int = 100
    ):
        self.start_hour = start_hour
        self.end_hour = end_hour
        self.threshold = threshold
        self.critical_threshold = critical_threshold

    def detect(self, events: List[CanonicalEvent], stats: LogStatistics) -> List[UnusualTimeAnomaly]:
        findings = []

        for hour in range(self.start_hour, self.end_hour + 1):
            count = stats.counts_by_hour.get(hour, 0)
            if count < self.threshold:
                continue

            sources = {event.source_id for event in events if event.hour_of_day == hour}

            findings.append(UnusualTimeAnomaly(
                hour_of_day=hour,
                count=count,
                source_id=sources.pop() if len(sources) == 1 else None,
                explanation=(
                    f"{count} requests detected between {hour:02d}:00-{hour:02d}:59, which is "
                    f"outside normal business hours. Could indicate unauthorized access or "
                    f"scheduled automated attacks."
                ),
                confidence=cap_confidence(OFF_HOURS_CONFIDENCE),
                severity=severity_for(count >= self.critical_threshold)
            ))
            logger.debug("Off-hours activity at %02d:00 (%d requests)", hour, count)

        return findings
