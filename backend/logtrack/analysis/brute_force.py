import logging
from typing import List

from logtrack.schemas import CanonicalEvent, FailedAttemptsAnomaly
from logtrack.utils.risk import cap_confidence, severity_for
from .statistics import LogStatistics

logger = logging.getLogger(__name__)

class FailedAttemptsDetector:
    """
    Brute force detection: sources accumulating failed requests (status >= 400).
    """

    def __init__(self, failed_threshold: int = 5, critical_threshold: int = 10, max_resources: int = 5):
        self.failed_threshold = failed_threshold
        self.critical_threshold = critical_threshold
        self.max_resources = max_resources

    def detect(self, events: List[CanonicalEvent], stats: LogStatistics) -> List[FailedAttemptsAnomaly]:
        findings = []

        for source_id, failures in stats.failures_by_source.items():
            failure_count = len(failures)
            if failure_count < self.failed_threshold:
                continue

            findings.append(FailedAttemptsAnomaly(
                source_id=source_id,
                count=failure_count,
                resources=self._failed_resources(failures),
                explanation=(
                    f"Source {source_id} had {failure_count} failed requests (4xx/5xx errors). "
                    f"This could indicate a brute force attack or unauthorized access attempt."
                ),
                confidence=cap_confidence(60 + failure_count * 5),
                severity=severity_for(failure_count > self.critical_threshold)
            ))
            logger.debug("Failed attempts from %s (%d failures)", source_id, failure_count)

        return findings

    def _failed_resources(self, failures: List[CanonicalEvent]) -> List[str]:
        """Distinct failed resources in order of first occurrence"""
        resources = list(dict.fromkeys(event.resource for event in failures))
        return resources[:self.max_resources]
