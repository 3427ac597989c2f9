"""
Timestamp normalization shared by every extractor.

All instants are naive wall-clock datetimes: timezone offsets present in the
source text are dropped, so events from any format sort against each other.
When a timestamp cannot be parsed the current time is substituted and the
result is flagged as inferred.
"""
import re
import logging
from datetime import datetime, timezone
from typing import NamedTuple, Optional, Union

logger = logging.getLogger(__name__)

MONTHS = {
    'Jan': 1, 'Feb': 2, 'Mar': 3, 'Apr': 4, 'May': 5, 'Jun': 6,
    'Jul': 7, 'Aug': 8, 'Sep': 9, 'Oct': 10, 'Nov': 11, 'Dec': 12
}

# 16/Oct/2024:10:23:45 +0000 (offset is ignored)
APACHE_TIMESTAMP = re.compile(
    r'^(?P<day>\d{1,2})/(?P<month>[A-Za-z]{3})/(?P<year>\d{4}):'
    r'(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})'
)

FALLBACK_FORMATS = [
    '%Y-%m-%d %H:%M:%S',
    '%Y/%m/%d %H:%M:%S',
    '%d/%b/%Y:%H:%M:%S %z',
    '%a %b %d %H:%M:%S %Y',
]

class ParsedTimestamp(NamedTuple):
    instant: datetime
    inferred: bool = False

    @property
    def hour(self) -> int:
        return self.instant.hour

def _strip_timezone(dt: datetime) -> datetime:
    return dt.replace(tzinfo=None) if dt.tzinfo is not None else dt

def _substitute_now(raw, kind: str) -> ParsedTimestamp:
    logger.debug("Unparseable %s timestamp %r, substituting current time", kind, raw)
    return ParsedTimestamp(datetime.now(), True)

def parse_apache_timestamp(timestamp_str: str) -> ParsedTimestamp:
    """Parse Apache/Nginx timestamp (e.g. 16/Oct/2024:10:23:45 +0000)"""
    match = APACHE_TIMESTAMP.match(timestamp_str.strip())
    if match:
        month = MONTHS.get(match.group('month').title())
        if month:
            try:
                return ParsedTimestamp(datetime(
                    int(match.group('year')), month, int(match.group('day')),
                    int(match.group('hour')), int(match.group('minute')), int(match.group('second'))
                ))
            except ValueError:
                pass

    return _substitute_now(timestamp_str, 'apache')

def parse_syslog_timestamp(month: str, day: str, time_str: str, year: Optional[int] = None) -> ParsedTimestamp:
    """
    Parse a traditional syslog header timestamp ("Dec 30 10:00:00").
    Syslog carries no year, the current calendar year is assumed unless given.
    """
    if year is None:
        year = datetime.now().year

    try:
        hour, minute, second = (int(part) for part in time_str.split(':'))
        return ParsedTimestamp(datetime(year, MONTHS[month.title()], int(day), hour, minute, second))
    except (KeyError, ValueError):
        return _substitute_now(f"{month} {day} {time_str}", 'syslog')

def parse_epoch(value: Union[int, float]) -> datetime:
    """Unix timestamp in seconds or milliseconds, as UTC wall-clock time"""
    if value > 1e10:
        value = value / 1000
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)

def parse_iso_timestamp(value) -> ParsedTimestamp:
    """Parse ISO-8601 and common textual timestamps, or numeric epochs"""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return ParsedTimestamp(parse_epoch(value))
        except (OverflowError, OSError, ValueError):
            return _substitute_now(value, 'epoch')

    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return ParsedTimestamp(_strip_timezone(datetime.fromisoformat(text.replace('Z', '+00:00'))))
        except ValueError:
            pass

        for fmt in FALLBACK_FORMATS:
            try:
                return ParsedTimestamp(_strip_timezone(datetime.strptime(text, fmt)))
            except ValueError:
                continue

    return _substitute_now(value, 'iso')

def parse_w3c_timestamp(date_str: str, time_str: str) -> ParsedTimestamp:
    """W3C extended logs split the timestamp across the date and time columns"""
    return parse_iso_timestamp(f"{date_str} {time_str}".strip())
