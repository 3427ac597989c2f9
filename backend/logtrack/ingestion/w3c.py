import logging
from typing import List, Optional, Sequence

from logtrack.schemas import CanonicalEvent
from .fields import W3C_FIELDS, resolve_int, resolve_str
from .lines import numbered_lines
from .timestamps import parse_w3c_timestamp

logger = logging.getLogger(__name__)

# Column order IIS writes when logging in W3C format with default settings
IIS_DEFAULT_FIELDS = [
    'date', 'time', 's-ip', 'cs-method', 'cs-uri-stem', 'cs-uri-query',
    's-port', 'cs-username', 'c-ip', 'cs(User-Agent)', 'cs(Referer)',
    'sc-status', 'sc-substatus', 'sc-win32-status', 'time-taken'
]

def parse_w3c_log(text: str, default_fields: Optional[Sequence[str]] = None) -> List[CanonicalEvent]:
    """
    Parse W3C extended log format (IIS and others).

    A "#Fields:" directive sets the column names for every following data line,
    replacing any earlier directive. Other "#" lines are comments. Data lines are
    mapped positionally; missing trailing columns become empty strings.
    """
    events = []
    fields: List[str] = list(default_fields or [])
    skipped_lines = 0

    for line_number, line in numbered_lines(text):
        stripped = line.strip()
        if stripped.startswith('#Fields:'):
            fields = stripped[len('#Fields:'):].split()
            continue

        if stripped.startswith('#'):
            continue

        if not fields:
            skipped_lines += 1
            continue

        values = stripped.split()
        entry = {
            field: values[i] if i < len(values) else ''
            for i, field in enumerate(fields)
        }

        date_str = entry.get('date', '')
        time_str = entry.get('time', '')
        parsed = parse_w3c_timestamp(date_str, time_str)

        events.append(CanonicalEvent(
            source_id=resolve_str(entry, W3C_FIELDS['source_id']),
            raw_timestamp=f"{date_str} {time_str}".strip(),
            method=resolve_str(entry, W3C_FIELDS['method']),
            resource=resolve_str(entry, W3C_FIELDS['resource']),
            status_code=resolve_int(entry, W3C_FIELDS['status_code']),
            size_bytes=resolve_int(entry, W3C_FIELDS['size_bytes']),
            instant=parsed.instant,
            hour_of_day=parsed.hour,
            line_number=line_number,
            timestamp_inferred=parsed.inferred,
        ))

    if skipped_lines:
        logger.warning("W3C: %d data lines skipped before any #Fields directive", skipped_lines)
    logger.info("W3C: %d entries parsed", len(events))
    return events

def parse_iis_log(text: str) -> List[CanonicalEvent]:
    """IIS logs use the W3C convention; default columns apply until a #Fields line"""
    return parse_w3c_log(text, default_fields=IIS_DEFAULT_FIELDS)
