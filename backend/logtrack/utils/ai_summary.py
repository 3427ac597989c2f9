import logging
from typing import List

from logtrack.schemas import AnalysisSummary, AnomalyRecord
from .llm_client import ChatCompletionClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a concise cybersecurity analyst providing actionable insights."

SUMMARY_PROMPT = """You are a cybersecurity analyst reviewing log analysis results. Analyze the following security findings and provide a brief, professional summary (3-4 sentences) of the security posture and recommended actions.

Analysis Results:
- Total Log Entries: {total_events}
- Unique Sources: {unique_sources}
- Critical Security Issues: {critical_count}
- Warning-Level Issues: {warning_count}

Detected Anomalies:
{anomaly_lines}

Provide a concise security assessment focusing on:
1. Overall threat level
2. Most concerning findings
3. Immediate action items

Keep it under 100 words and professional."""

def build_summary_prompt(summary: AnalysisSummary, anomalies: List[AnomalyRecord]) -> str:
    anomaly_lines = '\n'.join(
        f"- {a.title} ({a.severity.value.upper()}, {a.confidence}% confidence)"
        for a in anomalies
    ) or "- None"

    return SUMMARY_PROMPT.format(
        total_events=summary.total_events,
        unique_sources=summary.unique_sources,
        critical_count=summary.critical_count,
        warning_count=summary.warning_count,
        anomaly_lines=anomaly_lines
    )

class AISummaryGenerator:
    """Narrative assessment of an analysis result"""

    def __init__(self, client: ChatCompletionClient):
        self.client = client

    def summarize(self, summary: AnalysisSummary, anomalies: List[AnomalyRecord]) -> str:
        """
        Raises requests.RequestException or ValueError when the
        collaborator fails; callers decide how to report it.
        """
        content = self.client.complete(
            [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_summary_prompt(summary, anomalies)},
            ],
            temperature=0.7,
            max_tokens=300
        )
        logger.info("AI summary generated (%d characters)", len(content))
        return content or "No summary generated"
