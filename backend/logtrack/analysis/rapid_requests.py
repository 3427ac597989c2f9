import logging
from datetime import timedelta
from typing import Dict, List, Optional

from logtrack.schemas import CanonicalEvent, RapidRequestsAnomaly
from logtrack.utils.risk import cap_confidence, severity_for
from .statistics import LogStatistics

logger = logging.getLogger(__name__)

class RapidRequestDetector:
    """
    Bot detection: a burst of requests from one source inside a short window.

    Each source's events are scanned in time order with a window of
    `threshold` consecutive requests. The first window spanning at most
    `window_seconds` is extended to every later request still inside the
    window and reported; scanning of that source then stops, so a source
    yields at most one finding.
    """

    def __init__(self, threshold: int = 10, window_seconds: float = 10, critical_count: int = 20):
        self.threshold = threshold
        self.window = timedelta(seconds=window_seconds)
        self.critical_count = critical_count

    def detect(self, events: List[CanonicalEvent], stats: Optional[LogStatistics] = None) -> List[RapidRequestsAnomaly]:
        by_source: Dict[str, List[CanonicalEvent]] = {}
        for event in events:
            by_source.setdefault(event.source_id, []).append(event)

        findings = []
        for source_id, source_events in by_source.items():
            if len(source_events) < self.threshold:
                continue

            finding = self._first_burst(source_id, sorted(source_events, key=lambda e: e.instant))
            if finding:
                findings.append(finding)

        return findings

    def _first_burst(self, source_id: str, ordered: List[CanonicalEvent]) -> Optional[RapidRequestsAnomaly]:
        for start in range(len(ordered) - self.threshold + 1):
            start_time = ordered[start].instant
            if ordered[start + self.threshold - 1].instant - start_time > self.window:
                continue

            end = start + self.threshold
            while end < len(ordered) and ordered[end].instant - start_time <= self.window:
                end += 1

            count = end - start
            window_seconds = round((ordered[end - 1].instant - start_time).total_seconds(), 1)
            logger.debug("Rapid requests from %s (%d in %.1fs)", source_id, count, window_seconds)

            return RapidRequestsAnomaly(
                source_id=source_id,
                count=count,
                window_seconds=window_seconds,
                explanation=(
                    f"Source {source_id} made {count} requests in {window_seconds:.1f} seconds. "
                    f"This rapid-fire pattern indicates possible automated attack, bot activity, "
                    f"or scraping attempt."
                ),
                confidence=cap_confidence(60 + (count - self.threshold) * 3),
                severity=severity_for(count >= self.critical_count)
            )

        return None
