# sheet_ledger/utils/timing.py
"""
Time utility module.

Provides transaction identifier generation, UTC timestamps and parsing of
short duration strings such as '365d' used for token lifetimes.
"""

import re
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Optional


TRANSACTION_ID_PREFIX = 'txn-'

_DURATION_PATTERN = re.compile(r'^\s*(\d+)\s*([smhdw]?)\s*$', re.IGNORECASE)
_DURATION_UNITS = {
    '': 'seconds',
    's': 'seconds',
    'm': 'minutes',
    'h': 'hours',
    'd': 'days',
    'w': 'weeks',
}

_id_lock = threading.Lock()
_last_id_millis = 0


def now_utc() -> datetime:
    """
    Get the current datetime in UTC.

    Returns:
        datetime: Timezone-aware current datetime
    """
    return datetime.now(timezone.utc)


def format_utc_timestamp(dt: Optional[datetime] = None) -> str:
    """
    Format a datetime as an ISO-8601 UTC string ending in 'Z'.

    Args:
        dt (datetime, optional): DateTime to format. If None, uses current time.
            Naive datetimes are assumed to be UTC.

    Returns:
        str: Formatted timestamp string
    """
    if dt is None:
        dt = now_utc()
    elif dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f"{dt.microsecond // 1000:03d}Z"


def generate_transaction_id(millis: Optional[int] = None) -> str:
    """
    Generate a transaction identifier from the current epoch milliseconds.

    Identifiers are strictly increasing within the process: when two calls
    land on the same millisecond the later one is bumped forward by one.

    Args:
        millis (int, optional): Epoch milliseconds to use instead of the clock.

    Returns:
        str: Identifier like 'txn-1732000000000'
    """
    global _last_id_millis

    if millis is None:
        millis = time.time_ns() // 1_000_000

    with _id_lock:
        if millis <= _last_id_millis:
            millis = _last_id_millis + 1
        _last_id_millis = millis

    return f"{TRANSACTION_ID_PREFIX}{millis}"


def parse_duration(value) -> timedelta:
    """
    Parse a duration such as '365d', '12h', '30m', '45s', '2w' or '3600'.

    Args:
        value (str | int | timedelta): Duration to parse. Bare numbers are seconds.

    Returns:
        timedelta: Parsed duration

    Raises:
        ValueError: If the value is not a recognised duration
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int):
        return timedelta(seconds=value)

    match = _DURATION_PATTERN.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")

    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit.lower()]: int(amount)})
