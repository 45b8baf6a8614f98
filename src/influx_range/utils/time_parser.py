"""
Time input normalization.

Every boundary handed to the chunk planner or the query builder goes through
parse_time(), which turns a date, a datetime or a string into a tz-aware
pandas.Timestamp in the requested zone. Day boundaries are computed in that
zone, so the same calendar day maps to different UTC intervals depending on
the zone:

    parse_time("2024-06-15", "Australia/Sydney")              -> 2024-06-15 00:00:00+10:00
    parse_time("2024-06-15", "Australia/Sydney", end_of_day=True)
                                                              -> 2024-06-15 23:59:59+10:00
    to_utc_string("2024-06-15", "Australia/Sydney")           -> "2024-06-14T14:00:00Z"
"""

import logging
from datetime import date, datetime
from typing import Any, List, Tuple

import pandas as pd

from ..exceptions.influx_exceptions import ParseError, UnsupportedInputError

logger = logging.getLogger(__name__)

UTC_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# (strptime format, carries a time of day)
TEXT_FORMATS: List[Tuple[str, bool]] = [
    ("%Y-%m-%d %H:%M:%S", True),
    ("%Y-%m-%dT%H:%M:%S", True),
    ("%Y/%m/%d %H:%M:%S", True),
    ("%Y-%m-%d %H:%M", True),
    ("%Y-%m-%dT%H:%M", True),
    ("%Y/%m/%d %H:%M", True),
    ("%Y-%m-%d", False),
    ("%Y/%m/%d", False),
    ("%d/%m/%Y %H:%M:%S", True),
    ("%d-%m-%Y %H:%M:%S", True),
    ("%d/%m/%Y", False),
    ("%d-%m-%Y", False),
]

# Absolute instants, e.g. "2024-06-14T14:00:00Z" or "...+10:00"
OFFSET_FORMATS: List[str] = [
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S%z",
]

END_OF_DAY = pd.Timedelta(hours=23, minutes=59, seconds=59)


def localize_wall_clock(ts: pd.Timestamp, tz: str) -> pd.Timestamp:
    """Read a naive wall-clock value in `tz`.

    Repeated wall-clock times (DST end) take the earlier, daylight offset;
    skipped ones (DST start) move forward to the first valid instant.
    """
    return ts.tz_localize(tz, ambiguous=True, nonexistent="shift_forward")


def _localize(naive: datetime, tz: str, end_of_day: bool) -> pd.Timestamp:
    """Attach `tz` to a midnight wall-clock value, bumping to 23:59:59 if asked."""
    ts = pd.Timestamp(naive)
    if end_of_day:
        ts = ts + END_OF_DAY
    return localize_wall_clock(ts, tz)


def _parse_text(text: str, tz: str, end_of_day: bool) -> pd.Timestamp:
    value = text.strip()

    for fmt, has_time in TEXT_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return _localize(parsed, tz, end_of_day=end_of_day and not has_time)

    for fmt in OFFSET_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        return pd.Timestamp(parsed).tz_convert(tz)

    raise ParseError(f'Cannot parse time value: "{text}"')


def parse_time(x: Any, tz: str, end_of_day: bool = False) -> pd.Timestamp:
    """
    Parse a time input into a tz-aware Timestamp in `tz`.

    Args:
        x: A date, a datetime / pandas.Timestamp, or a string
        tz: IANA timezone name the result is expressed in
        end_of_day: For date-only inputs, use 23:59:59 instead of 00:00:00

    Returns:
        pandas.Timestamp carrying `tz`

    Raises:
        ParseError: If a string matches none of the accepted formats
        UnsupportedInputError: If `x` is of any other type
    """
    # datetime is a subclass of date, check it first
    if isinstance(x, datetime):
        ts = pd.Timestamp(x)
        if ts.tzinfo is None:
            return localize_wall_clock(ts, tz)
        return ts.tz_convert(tz)

    if isinstance(x, date):
        return _localize(datetime(x.year, x.month, x.day), tz, end_of_day)

    if isinstance(x, str):
        return _parse_text(x, tz, end_of_day)

    raise UnsupportedInputError(f"Unsupported time input class: {type(x).__name__}")


def to_utc_string(x: Any, tz: str, end_of_day: bool = False) -> str:
    """Parse `x` via parse_time() and render it as a second-precision UTC ISO-8601 string."""
    parsed = parse_time(x, tz=tz, end_of_day=end_of_day)
    return parsed.tz_convert("UTC").strftime(UTC_FORMAT)
