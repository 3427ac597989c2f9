from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List

from logtrack.schemas import CanonicalEvent

@dataclass
class LogStatistics:
    """Aggregates shared by the detection rules; read-only once built"""
    counts_by_source: Dict[str, int] = field(default_factory=dict)
    # Full events rather than counts: rules inspect which resources failed
    failures_by_source: Dict[str, List[CanonicalEvent]] = field(default_factory=dict)
    counts_by_hour: Dict[int, int] = field(default_factory=dict)
    total_sources: int = 0
    avg_requests_per_source: float = 0.0
    total_events: int = 0

def build_stats(events: List[CanonicalEvent]) -> LogStatistics:
    """
    Count requests per source, failures (status >= 400) per source and
    requests per hour of day. Dict order follows first occurrence.
    """
    counts_by_source: Dict[str, int] = defaultdict(int)
    failures_by_source: Dict[str, List[CanonicalEvent]] = defaultdict(list)
    counts_by_hour: Dict[int, int] = defaultdict(int)

    for event in events:
        counts_by_source[event.source_id] += 1
        if event.status_code >= 400:
            failures_by_source[event.source_id].append(event)
        counts_by_hour[event.hour_of_day] += 1

    total_sources = len(counts_by_source)
    total_events = len(events)

    return LogStatistics(
        counts_by_source=dict(counts_by_source),
        failures_by_source=dict(failures_by_source),
        counts_by_hour=dict(counts_by_hour),
        total_sources=total_sources,
        avg_requests_per_source=total_events / total_sources if total_sources else 0.0,
        total_events=total_events
    )
