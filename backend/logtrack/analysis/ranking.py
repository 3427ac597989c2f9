from typing import Iterable, List

from logtrack.schemas import AnomalyRecord, Severity

SEVERITY_RANK = {Severity.CRITICAL: 0, Severity.WARNING: 1}

def rank_anomalies(rule_outputs: Iterable[List[AnomalyRecord]]) -> List[AnomalyRecord]:
    """
    Concatenate rule outputs in rule order, then order critical before
    warning and by confidence descending. The sort is stable, so ties keep
    their concatenation order.
    """
    anomalies = [anomaly for output in rule_outputs for anomaly in output]
    return sorted(anomalies, key=lambda a: (SEVERITY_RANK[a.severity], -a.confidence))
