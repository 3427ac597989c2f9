import logging
from typing import List

from logtrack.schemas import CanonicalEvent, HighRequestVolumeAnomaly
from logtrack.utils.risk import cap_confidence, round_half_up, severity_for
from .statistics import LogStatistics

logger = logging.getLogger(__name__)

class HighVolumeDetector:
    """
    Flags sources whose request count is far above the per-source average.
    Typical of automated scanning or DDoS traffic.
    """

    def __init__(self, multiplier_threshold: float = 5, critical_multiplier: float = 10):
        self.multiplier_threshold = multiplier_threshold
        self.critical_multiplier = critical_multiplier

    def detect(self, events: List[CanonicalEvent], stats: LogStatistics) -> List[HighRequestVolumeAnomaly]:
        findings = []
        if stats.avg_requests_per_source <= 0:
            return findings

        expected = round_half_up(stats.avg_requests_per_source)

        for source_id, count in stats.counts_by_source.items():
            multiplier = count / stats.avg_requests_per_source
            if multiplier < self.multiplier_threshold:
                continue

            findings.append(HighRequestVolumeAnomaly(
                source_id=source_id,
                count=count,
                expected_count=expected,
                explanation=(
                    f"Source {source_id} made {count} requests, which is {multiplier:.1f}x "
                    f"higher than average ({expected}). This could indicate automated "
                    f"scanning or DDoS activity."
                ),
                confidence=cap_confidence(50 + multiplier * 10),
                severity=severity_for(multiplier > self.critical_multiplier)
            ))
            logger.debug("High volume from %s (%d requests, %.1fx avg)", source_id, count, multiplier)

        return findings
