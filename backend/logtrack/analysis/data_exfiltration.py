import logging
from typing import List, Optional

from logtrack.schemas import CanonicalEvent, LargeTransferAnomaly
from logtrack.utils.risk import cap_confidence, severity_for
from .statistics import LogStatistics

logger = logging.getLogger(__name__)

class LargeTransferDetector:
    """
    Data exfiltration detection: single requests moving more than the
    threshold. One finding per qualifying event, no aggregation.
    """

    def __init__(self, threshold_bytes: int = 10_000_000, critical_bytes: int = 50_000_000):
        self.threshold_bytes = threshold_bytes
        self.critical_bytes = critical_bytes

    def detect(self, events: List[CanonicalEvent], stats: Optional[LogStatistics] = None) -> List[LargeTransferAnomaly]:
        findings = []

        for event in events:
            if event.size_bytes <= self.threshold_bytes:
                continue

            megabytes = round(event.size_bytes / 1_000_000, 2)

            findings.append(LargeTransferAnomaly(
                source_id=event.source_id,
                resource=event.resource,
                megabytes=megabytes,
                line_number=event.line_number,
                explanation=(
                    f"Large data transfer detected: {megabytes:.2f} MB from source "
                    f"{event.source_id} accessing {event.resource}. Could indicate data "
                    f"exfiltration or unauthorized file downloads."
                ),
                confidence=cap_confidence(60 + (event.size_bytes / self.threshold_bytes) * 10),
                severity=severity_for(event.size_bytes > self.critical_bytes)
            ))
            logger.debug("Large transfer from %s (%.2f MB)", event.source_id, megabytes)

        return findings
