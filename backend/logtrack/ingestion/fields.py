"""
Declarative field resolution for structured log records.

Each canonical field is resolved from an ordered list of candidate keys with a
single fallback value, so the defaulting policy of every format lives in one
table instead of being scattered through the extractors.
"""
from datetime import datetime
from typing import Any, Dict, Mapping, NamedTuple, Tuple

from logtrack.schemas import CanonicalEvent
from .timestamps import ParsedTimestamp, parse_iso_timestamp

class FieldRule(NamedTuple):
    candidates: Tuple[str, ...]
    default: Any

FieldTable = Dict[str, FieldRule]

# Values treated as "field absent"
MISSING_VALUES = (None, '', '-')

JSON_FIELDS: FieldTable = {
    'source_id': FieldRule(('ip', 'client_ip', 'remote_addr', 'source_ip'), 'unknown'),
    'timestamp': FieldRule(('timestamp', 'time', 'datetime', '@timestamp'), None),
    'method': FieldRule(('method', 'http_method', 'verb'), 'GET'),
    'resource': FieldRule(('url', 'path', 'uri', 'request'), '/'),
    'status_code': FieldRule(('status', 'status_code', 'response_code'), 200),
    'size_bytes': FieldRule(('bytes', 'size', 'bytes_sent'), 0),
}

# Timestamp is assembled from the date and time columns by the W3C extractor
W3C_FIELDS: FieldTable = {
    'source_id': FieldRule(('c-ip', 's-ip'), 'unknown'),
    'method': FieldRule(('cs-method',), 'GET'),
    'resource': FieldRule(('cs-uri-stem',), '/'),
    'status_code': FieldRule(('sc-status',), 200),
    'size_bytes': FieldRule(('sc-bytes',), 0),
}

# Records returned by the external parser use the canonical names first
EXTERNAL_FIELDS: FieldTable = {
    'source_id': FieldRule(('source_id', 'sourceId') + JSON_FIELDS['source_id'].candidates, 'unknown'),
    'timestamp': FieldRule(('raw_timestamp', 'rawTimestamp') + JSON_FIELDS['timestamp'].candidates, None),
    'method': FieldRule(JSON_FIELDS['method'].candidates, 'GET'),
    'resource': FieldRule(('resource',) + JSON_FIELDS['resource'].candidates, '/'),
    'status_code': FieldRule(('status_code', 'statusCode') + JSON_FIELDS['status_code'].candidates, 200),
    'size_bytes': FieldRule(('size_bytes', 'sizeBytes') + JSON_FIELDS['size_bytes'].candidates, 0),
}

def resolve_field(record: Mapping[str, Any], rule: FieldRule) -> Any:
    """Return the first present candidate value, else the rule default"""
    for key in rule.candidates:
        value = record.get(key)
        if value not in MISSING_VALUES:
            return value
    return rule.default

def resolve_int(record: Mapping[str, Any], rule: FieldRule) -> int:
    value = resolve_field(record, rule)
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return rule.default

def resolve_str(record: Mapping[str, Any], rule: FieldRule) -> str:
    return str(resolve_field(record, rule))

def event_from_record(record: Mapping[str, Any], table: FieldTable, line_number: int) -> CanonicalEvent:
    """Build a canonical event from a key/value record using a field table"""
    raw_timestamp = resolve_field(record, table['timestamp'])
    if raw_timestamp is None:
        parsed = ParsedTimestamp(datetime.now(), True)
        raw_timestamp = parsed.instant.isoformat()
    else:
        parsed = parse_iso_timestamp(raw_timestamp)

    return CanonicalEvent(
        source_id=resolve_str(record, table['source_id']),
        raw_timestamp=str(raw_timestamp),
        method=resolve_str(record, table['method']),
        resource=resolve_str(record, table['resource']),
        status_code=resolve_int(record, table['status_code']),
        size_bytes=resolve_int(record, table['size_bytes']),
        instant=parsed.instant,
        hour_of_day=parsed.hour,
        line_number=line_number,
        timestamp_inferred=parsed.inferred,
    )
