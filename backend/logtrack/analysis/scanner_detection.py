import logging
from typing import Dict, List, Optional, Sequence, Tuple

from logtrack.schemas import CanonicalEvent, SuspiciousResourceAnomaly, Severity
from logtrack.utils.risk import cap_confidence
from .statistics import LogStatistics

logger = logging.getLogger(__name__)

# Sensitive resource substrings probed by scanners and reconnaissance tools
SENSITIVE_PATHS = [
    '/admin', '/config', '/.env', '/wp-admin', '/phpmyadmin',
    '/.git', '/backup', '/database', '/.aws', '/api/admin'
]

class SuspiciousResourceDetector:
    """
    Reconnaissance detection: any access to a denylisted resource.
    One finding per (source, pattern) pair; every hit is critical.
    """

    def __init__(self, patterns: Optional[Sequence[str]] = None, max_resources: int = 3):
        self.patterns = list(patterns or SENSITIVE_PATHS)
        self.max_resources = max_resources

    def detect(self, events: List[CanonicalEvent], stats: Optional[LogStatistics] = None) -> List[SuspiciousResourceAnomaly]:
        # (source, pattern) -> {resource: None} keeps distinct resources in first-seen order
        access: Dict[Tuple[str, str], Dict[str, None]] = {}
        hits: Dict[Tuple[str, str], int] = {}

        for event in events:
            resource = event.resource.lower()
            for pattern in self.patterns:
                if pattern.lower() in resource:
                    key = (event.source_id, pattern)
                    access.setdefault(key, {})[event.resource] = None
                    hits[key] = hits.get(key, 0) + 1

        findings = []
        for (source_id, pattern), resources in access.items():
            count = hits[(source_id, pattern)]
            distinct = list(resources)

            findings.append(SuspiciousResourceAnomaly(
                source_id=source_id,
                matched_pattern=pattern,
                count=count,
                resources=distinct[:self.max_resources],
                explanation=(
                    f'Source {source_id} attempted to access sensitive resources matching '
                    f'pattern "{pattern}" {count} time(s). This could indicate reconnaissance '
                    f'or an attack attempt.'
                ),
                # 85 for a single resource, +5 per additional distinct resource
                confidence=cap_confidence(80 + 5 * len(distinct)),
                severity=Severity.CRITICAL
            ))
            logger.debug("Suspicious access from %s (%s)", source_id, pattern)

        return findings
