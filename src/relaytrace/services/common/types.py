"""Shared domain types for relaytrace services.

Lightweight dataclasses produced by query functions and consumed by the
query engine. Keeping them in their own module avoids circular imports
between ``queries`` and individual service packages.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass

from relaytrace.models.address import CanonicalAddress  # noqa: TC001
from relaytrace.models.constants import (
    DAY_SECONDS,
    SEARCH_WINDOW_AFTER_SECONDS,
    SEARCH_WINDOW_BEFORE_SECONDS,
)
from relaytrace.models.query_date import midnight_timestamp, timestamp_to_date


@dataclass(frozen=True, slots=True)
class SearchWindow:
    """Half-open ``[start, end)`` range of consensus times considered for a date.

    A relay listed in the consensus just before midnight, or in the first
    consensuses of the following days, may still have been reachable at
    some point during the queried day, hence the margins.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.end <= self.start:
            msg = f"window end ({self.end}) must be after start ({self.start})"
            raise ValueError(msg)

    @classmethod
    def around(cls, date: datetime.date) -> SearchWindow:
        midnight = midnight_timestamp(date)
        return cls(
            start=midnight - SEARCH_WINDOW_BEFORE_SECONDS,
            end=midnight + SEARCH_WINDOW_AFTER_SECONDS,
        )

    @property
    def probe_end(self) -> int:
        """Exclusive upper bound for exit probes that can join a status in the window."""
        return self.end + DAY_SECONDS

    def contains(self, timestamp: int) -> bool:
        return self.start <= timestamp < self.end


@dataclass(frozen=True, slots=True)
class Coverage:
    """Time span of stored consensuses and whether the window holds any.

    Attributes:
        first_valid_after: Earliest stored consensus time, or ``None`` when
            nothing was imported.
        last_valid_after: Latest stored consensus time, or ``None``.
        relevant_statuses: Whether any status entry, for any address, falls
            in the search window.
    """

    first_valid_after: int | None
    last_valid_after: int | None
    relevant_statuses: bool

    @property
    def empty(self) -> bool:
        return self.first_valid_after is None or self.last_valid_after is None

    @property
    def first_date(self) -> datetime.date | None:
        if self.first_valid_after is None:
            return None
        return timestamp_to_date(self.first_valid_after)

    @property
    def last_date(self) -> datetime.date | None:
        if self.last_valid_after is None:
            return None
        return timestamp_to_date(self.last_valid_after)


@dataclass(frozen=True, slots=True)
class StatusRow:
    """One stored (status entry, address) row, decoded.

    Attributes:
        valid_after: Consensus time.
        fingerprint: Relay identity as 40 uppercase hex digits.
        address: One OR address of the relay at that consensus.
        nickname: Relay nickname, if known.
        exit: Exit policy summary, if known.
    """

    valid_after: int
    fingerprint: str
    address: CanonicalAddress
    nickname: str | None = None
    exit: bool | None = None


@dataclass(frozen=True, slots=True)
class ExitProbeRow:
    """One stored exit probe, decoded."""

    fingerprint: str
    scanned_at: int
    address: CanonicalAddress
