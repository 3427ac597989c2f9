"""
Best-effort parsing for logs whose format could not be detected.

A configured text-understanding collaborator structures a small sample of the
input; anything going wrong with it (network, quota, malformed answer) falls
back to the Apache/Nginx extractor. This path never raises.
"""
import json
import logging
from typing import Any, Dict, List, NamedTuple, Optional

import requests

from logtrack.schemas import CanonicalEvent
from logtrack.utils.llm_client import ChatCompletionClient, strip_code_fence
from .apache import parse_apache_log
from .fields import EXTERNAL_FIELDS, event_from_record
from .lines import non_blank_lines

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a log parsing assistant. Return only valid JSON."

PARSE_PROMPT = """You are a log file parser. Analyze this log file sample and extract structured data.

For each log entry, extract:
- source_id: IP address, hostname or other identifier of the originator
- timestamp: Date/time string
- method: HTTP method or action type (default: "LOG")
- resource: URL path or resource (default: "/")
- status_code: Status code (default: 200)
- size_bytes: Size in bytes (default: 0)

Return ONLY a JSON array of objects. No explanation.

Log sample:
{sample}

Return format:
[{{"source_id":"x.x.x.x","timestamp":"...","method":"GET","resource":"/","status_code":200,"size_bytes":0}}]"""

class UnknownParseResult(NamedTuple):
    events: List[CanonicalEvent]
    # Set when the events cover only a sample of the input
    sampled_lines: Optional[int] = None

class ExternalLogParser:
    """Asks a chat completion model to structure an unknown log sample"""

    def __init__(self, client: ChatCompletionClient):
        self.client = client

    def parse_sample(self, sample: str) -> List[Dict[str, Any]]:
        content = self.client.complete([
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": PARSE_PROMPT.format(sample=sample)},
        ])

        records = json.loads(strip_code_fence(content))
        if not isinstance(records, list):
            raise ValueError("External parser did not return a JSON array")

        return [record for record in records if isinstance(record, dict)]

def parse_unknown(
    text: str,
    external_parser: Optional[ExternalLogParser] = None,
    sample_lines: int = 20
) -> UnknownParseResult:
    """Parse an unrecognised log, delegating a sample to the external parser if any"""
    if external_parser is None:
        logger.info("Unknown log format and no external parser configured, trying Apache/Nginx format")
        return UnknownParseResult(parse_apache_log(text))

    sampled = non_blank_lines(text, sample_lines)
    sample = '\n'.join(sampled)
    try:
        records = external_parser.parse_sample(sample)
        events = [
            event_from_record(record, EXTERNAL_FIELDS, index)
            for index, record in enumerate(records, start=1)
        ]
    except (requests.RequestException, ValueError) as e:
        logger.warning("External parser failed, falling back to Apache/Nginx format: %s", e)
        return UnknownParseResult(parse_apache_log(text))

    if not events:
        logger.warning("External parser returned no records, falling back to Apache/Nginx format")
        return UnknownParseResult(parse_apache_log(text))

    logger.info("External parser: %d entries parsed from a %d line sample", len(events), len(sampled))
    return UnknownParseResult(events, len(sampled))
