import re
import logging
from typing import List

from logtrack.schemas import CanonicalEvent
from .lines import numbered_lines
from .timestamps import parse_apache_timestamp

logger = logging.getLogger(__name__)

# Common and combined formats share this prefix; referrer and user agent are ignored.
# Example: 127.0.0.1 - - [30/Dec/2025:10:00:00 +0000] "GET /api/users HTTP/1.1" 200 1234
ACCESS_LOG_PATTERN = re.compile(
    r'^(?P<host>\S+)\s+\S+\s+\S+\s+\[(?P<timestamp>[^\]]+)\]\s+'
    r'"(?P<method>\w+)\s+(?P<endpoint>[^\s"]+)[^"]*"\s+'
    r'(?P<status>\d+)\s+(?P<size>\d+|-)'
)

def parse_apache_log(text: str) -> List[CanonicalEvent]:
    """
    Parse Apache/Nginx access logs (common or combined format).
    Lines that do not match are skipped, never fatal.
    """
    events = []
    total_lines = 0
    skipped_lines = 0

    for line_number, line in numbered_lines(text):
        total_lines += 1
        match = ACCESS_LOG_PATTERN.match(line.strip())
        if not match:
            skipped_lines += 1
            continue

        timestamp_str = match.group('timestamp')
        parsed = parse_apache_timestamp(timestamp_str)

        events.append(CanonicalEvent(
            source_id=match.group('host'),
            raw_timestamp=timestamp_str,
            method=match.group('method'),
            resource=match.group('endpoint'),
            status_code=int(match.group('status')),
            size_bytes=parse_size(match.group('size')),
            instant=parsed.instant,
            hour_of_day=parsed.hour,
            line_number=line_number,
            timestamp_inferred=parsed.inferred
        ))

    if total_lines:
        logger.info(
            "Apache/Nginx: %d/%d lines parsed (%d%%), %d skipped",
            len(events), total_lines, round(len(events) / total_lines * 100), skipped_lines
        )

    return events

def parse_size(size_str: str) -> int:
    """Parse size (could be '-' for zero)"""
    return 0 if size_str == '-' else int(size_str)
