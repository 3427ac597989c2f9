import json
from typing import List

import pandas as pd

from logtrack.schemas import (
    AnalysisResult, AnalysisSummary, AnomalyRecord, CanonicalEvent, Severity
)

CSV_COLUMNS = [
    'type', 'title', 'severity', 'confidence', 'source_id', 'count', 'explanation'
]

def build_summary(events: List[CanonicalEvent], anomalies: List[AnomalyRecord]) -> AnalysisSummary:
    """Headline numbers shown alongside the anomaly list"""
    instants = [event.instant for event in events]
    critical_count = sum(1 for a in anomalies if a.severity == Severity.CRITICAL)

    return AnalysisSummary(
        total_events=len(events),
        unique_sources=len({event.source_id for event in events}),
        first_seen=min(instants) if instants else None,
        last_seen=max(instants) if instants else None,
        anomaly_count=len(anomalies),
        critical_count=critical_count,
        warning_count=len(anomalies) - critical_count
    )

class ReportGenerator:
    """Renders analysis results for export"""

    def generate_json_report(self, result: AnalysisResult, include_events: bool = True) -> str:
        exclude = None if include_events else {'events'}
        return json.dumps(result.model_dump(mode='json', exclude=exclude), indent=2)

    def generate_csv_report(self, anomalies: List[AnomalyRecord]) -> str:
        """One row per anomaly, rule-specific payload fields are omitted"""
        rows = []
        for anomaly in anomalies:
            rows.append({
                'type': anomaly.type,
                'title': anomaly.title,
                'severity': anomaly.severity.value,
                'confidence': anomaly.confidence,
                'source_id': getattr(anomaly, 'source_id', None) or '',
                'count': getattr(anomaly, 'count', ''),
                'explanation': anomaly.explanation,
            })

        df = pd.DataFrame(rows, columns=CSV_COLUMNS)
        return df.to_csv(index=False)
