import re
import logging
from typing import List, Optional

from logtrack.schemas import CanonicalEvent
from .lines import numbered_lines
from .timestamps import parse_syslog_timestamp

logger = logging.getLogger(__name__)

# RFC 3164 style header: "Dec 30 10:00:00 web01 message..."
SYSLOG_PATTERN = re.compile(
    r'^(?P<month>[A-Z][a-z]{2})\s+(?P<day>\d{1,2})\s+(?P<time>\d{2}:\d{2}:\d{2})\s+'
    r'(?P<hostname>\S+)\s+(?P<message>.+)$'
)

# HTTP request fragment embedded in the message: "GET /path HTTP/1.1" 404
HTTP_FRAGMENT_PATTERN = re.compile(
    r'"(?P<method>GET|POST|PUT|DELETE|PATCH|HEAD|OPTIONS)\s+(?P<endpoint>\S+)[^"]*"\s+(?P<status>\d{3})'
)

def parse_syslog(text: str, year: Optional[int] = None) -> List[CanonicalEvent]:
    """
    Parse traditional syslog lines.
    The hostname identifies the source; the year is assumed to be the current
    one since syslog headers do not carry it.
    """
    events = []
    skipped_lines = 0

    for line_number, line in numbered_lines(text):
        match = SYSLOG_PATTERN.match(line.strip())
        if not match:
            skipped_lines += 1
            continue

        month, day, time_str = match.group('month'), match.group('day'), match.group('time')
        parsed = parse_syslog_timestamp(month, day, time_str, year)
        message = match.group('message')

        method, endpoint, status = 'LOG', '/', 200
        http_match = HTTP_FRAGMENT_PATTERN.search(message)
        if http_match:
            method = http_match.group('method')
            endpoint = http_match.group('endpoint')
            status = int(http_match.group('status'))

        events.append(CanonicalEvent(
            source_id=match.group('hostname'),
            raw_timestamp=f"{month} {day} {time_str}",
            method=method,
            resource=endpoint,
            status_code=status,
            # No transfer size in syslog, message length stands in for it
            size_bytes=len(message),
            instant=parsed.instant,
            hour_of_day=parsed.hour,
            line_number=line_number,
            timestamp_inferred=parsed.inferred,
        ))

    if skipped_lines:
        logger.debug("Syslog: %d lines did not match the header pattern", skipped_lines)
    logger.info("Syslog: %d entries parsed", len(events))
    return events
