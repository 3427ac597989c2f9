import json
import logging
from typing import Any, Dict, List, Optional

from logtrack.schemas import CanonicalEvent
from .fields import JSON_FIELDS, event_from_record
from .lines import numbered_lines

logger = logging.getLogger(__name__)

def parse_json_logs(text: str) -> List[CanonicalEvent]:
    """
    Parse JSON-lines application logs, one object per line.
    Field names vary between loggers, see JSON_FIELDS for the accepted keys.
    """
    events = []
    skipped_lines = 0

    for line_number, line in numbered_lines(text):
        log_data = load_json_object(line)
        if log_data is None:
            logger.debug("Could not parse JSON line %d", line_number)
            skipped_lines += 1
            continue

        events.append(event_from_record(log_data, JSON_FIELDS, line_number))

    if skipped_lines:
        logger.warning("JSON: %d lines could not be parsed", skipped_lines)
    logger.info("JSON: %d entries parsed", len(events))
    return events

def load_json_object(line: str) -> Optional[Dict[str, Any]]:
    """Decode a line as a JSON object, falling back to an embedded object"""
    try:
        log_data = json.loads(line.strip())
    except json.JSONDecodeError:
        log_data = extract_json_from_line(line)

    return log_data if isinstance(log_data, dict) else None

def extract_json_from_line(line: str) -> Optional[Any]:
    """
    Try to extract JSON from mixed-format log lines.
    Common pattern: [INFO] 2025-12-30T10:00:00Z {"message": "..."}
    """
    json_start = line.find('{')
    json_end = line.rfind('}')

    if json_start != -1 and json_end > json_start:
        try:
            return json.loads(line[json_start:json_end + 1])
        except json.JSONDecodeError:
            return None

    return None
