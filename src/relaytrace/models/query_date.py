"""Query date parsing and UTC time formatting helpers.

Query dates are calendar days compared at midnight UTC. Inputs are lenient
about whitespace and trailing text (``" 2020-06-01 12:00 "`` is the first of
June) but strict about the ``YYYY-MM-DD`` prefix itself.
"""

from __future__ import annotations

import datetime
import re
from enum import StrEnum

from .constants import RECENT_DATE_DAYS


class DateError(StrEnum):
    """Reason a query date could not be parsed.

    Attributes:
        ABSENT: No date was supplied.
        INVALID: Something was supplied but it does not start with a valid
            ``YYYY-MM-DD`` date.
    """

    ABSENT = "absent"
    INVALID = "invalid"


_ISO_DATE_LENGTH = len("yyyy-mm-dd")
_ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_WHITESPACE = re.compile(r"\s")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_query_date(text: str | None) -> datetime.date | DateError:
    """Parse a query date without raising.

    All whitespace is removed, then the first ten characters must form a
    valid ISO calendar date.
    """
    if text is None or not text.strip():
        return DateError.ABSENT
    compact = _WHITESPACE.sub("", text)
    head = compact[:_ISO_DATE_LENGTH]
    if not _ISO_DATE.fullmatch(head):
        return DateError.INVALID
    try:
        return datetime.date.fromisoformat(head)
    except ValueError:
        return DateError.INVALID


def is_too_recent(date: datetime.date, today: datetime.date | None = None) -> bool:
    """Whether *date* is too close to *today* (UTC) to be fully covered."""
    if today is None:
        today = datetime.datetime.now(datetime.UTC).date()
    return date > today - datetime.timedelta(days=RECENT_DATE_DAYS)


def midnight_timestamp(date: datetime.date) -> int:
    """Unix timestamp of midnight UTC at the start of *date*."""
    return int(datetime.datetime.combine(date, datetime.time(), tzinfo=datetime.UTC).timestamp())


def timestamp_to_date(timestamp: int) -> datetime.date:
    """UTC calendar day containing *timestamp*."""
    return datetime.datetime.fromtimestamp(timestamp, datetime.UTC).date()


def format_timestamp(timestamp: int) -> str:
    """Format a unix timestamp as ``YYYY-MM-DD HH:MM:SS`` in UTC."""
    return datetime.datetime.fromtimestamp(timestamp, datetime.UTC).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(date_part: str, time_part: str) -> int:
    """Parse a descriptor ``YYYY-MM-DD HH:MM:SS`` pair into a UTC unix timestamp.

    Raises:
        ValueError: If the two parts do not form a valid timestamp.
    """
    parsed = datetime.datetime.strptime(f"{date_part} {time_part}", TIMESTAMP_FORMAT)
    return int(parsed.replace(tzinfo=datetime.UTC).timestamp())
