"""
Query engine output: reconciled matches, response document, and outcome.

A [Match][relaytrace.models.query_response.Match] is built fresh per query
and never persisted. The [QueryResponse][relaytrace.models.query_response.QueryResponse]
serializes to the version ``1.0`` JSON document: snake_case keys, with
``None`` values and empty collections omitted. The
[QueryOutcome][relaytrace.models.query_response.QueryOutcome] lets callers
branch on what happened without inspecting the document.

Examples:
    ```python
    response = QueryResponse(query_address="86.59.21.38", query_date="2020-06-01")
    response.to_json()
    # '{"version": "1.0", "query_address": "86.59.21.38", "query_date": "2020-06-01"}'
    ```
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from ._validation import validate_instance, validate_optional_bool, validate_timestamp
from .address import CanonicalAddress
from .fingerprint import normalize_fingerprint
from .query_date import format_timestamp, parse_timestamp


RESPONSE_VERSION = "1.0"


class QueryOutcome(StrEnum):
    """Distinguishable result kinds of a lookup.

    Input outcomes are decided before storage is touched. Storage outcomes
    come with a populated [QueryResponse][relaytrace.models.query_response.QueryResponse].

    Attributes:
        NO_ADDRESS: No address was supplied.
        NO_DATE: No date was supplied.
        INVALID_ADDRESS: The address is not a valid IPv4 or IPv6 address.
        INVALID_DATE: The date is not a valid ``YYYY-MM-DD`` date.
        DATE_TOO_RECENT: The date is too close to today to be covered yet.
        SERVER_PROBLEM: Storage was unreachable or a query failed.
        DATABASE_EMPTY: Nothing has been imported yet.
        DATE_OUT_OF_RANGE: The date is outside the stored coverage.
        NO_DATA_FOR_WINDOW: No consensus exists around the date.
        POSITIVE: The address was a relay on the date.
        NEARBY: No direct match, but same-prefix relay addresses exist.
        NEGATIVE: Data exists for the date, but no match and no neighbours.
    """

    NO_ADDRESS = "no_address"
    NO_DATE = "no_date"
    INVALID_ADDRESS = "invalid_address"
    INVALID_DATE = "invalid_date"
    DATE_TOO_RECENT = "date_too_recent"
    SERVER_PROBLEM = "server_problem"
    DATABASE_EMPTY = "database_empty"
    DATE_OUT_OF_RANGE = "date_out_of_range"
    NO_DATA_FOR_WINDOW = "no_data_for_window"
    POSITIVE = "positive"
    NEARBY = "nearby"
    NEGATIVE = "negative"


@dataclass(frozen=True, slots=True)
class Match:
    """One relay at one consensus whose address set holds the queried address.

    Attributes:
        valid_after: Unix timestamp of the consensus.
        fingerprint: Relay identity as 40 uppercase hex digits.
        addresses: OR addresses of the relay at that consensus plus any
            exit addresses joined in from exit probes.
        nickname: Relay nickname, or ``None`` if unknown.
        exit: Exit policy summary, or ``None`` if unknown.
    """

    valid_after: int
    fingerprint: str
    addresses: frozenset[CanonicalAddress]
    nickname: str | None = None
    exit: bool | None = None

    def __post_init__(self) -> None:
        validate_timestamp(self.valid_after, "valid_after")
        object.__setattr__(self, "fingerprint", normalize_fingerprint(self.fingerprint))
        validate_instance(self.addresses, frozenset, "addresses")
        validate_optional_bool(self.exit, "exit")

    @property
    def timestamp(self) -> str:
        """Consensus time formatted as ``YYYY-MM-DD HH:MM:SS`` (UTC)."""
        return format_timestamp(self.valid_after)

    def to_dict(self) -> dict[str, Any]:
        """Render the match, bracketing IPv6 addresses and omitting unknowns."""
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "addresses": [address.bracketed for address in sorted(self.addresses)],
            "fingerprint": self.fingerprint,
        }
        if self.nickname is not None:
            data["nickname"] = self.nickname
        if self.exit is not None:
            data["exit"] = self.exit
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Match:
        """Parse a match previously rendered by ``to_dict()``.

        Raises:
            KeyError: If a required key is missing.
            ValueError: If a value is malformed.
        """
        date_part, _, time_part = data["timestamp"].partition(" ")
        return cls(
            valid_after=parse_timestamp(date_part, time_part),
            fingerprint=data["fingerprint"],
            addresses=frozenset(CanonicalAddress.from_text(a) for a in data.get("addresses", [])),
            nickname=data.get("nickname"),
            exit=data.get("exit"),
        )


@dataclass(frozen=True, slots=True)
class QueryResponse:
    """The versioned query response document.

    Attributes:
        query_address: Normalized queried address.
        query_date: Queried date as ``YYYY-MM-DD``.
        first_date_in_database: Earliest consensus date in storage.
        last_date_in_database: Latest consensus date in storage.
        relevant_statuses: Whether any consensus falls in the search window
            around the query date, regardless of address.
        matches: Direct matches in ``(valid_after, fingerprint)`` order.
        nearby_addresses: Same-prefix addresses, present only when there
            are no matches.
        version: Document format version.
    """

    query_address: str | None = None
    query_date: str | None = None
    first_date_in_database: str | None = None
    last_date_in_database: str | None = None
    relevant_statuses: bool | None = None
    matches: tuple[Match, ...] = ()
    nearby_addresses: tuple[str, ...] = ()
    version: str = RESPONSE_VERSION

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready document with ``None`` and empty fields omitted."""
        data: dict[str, Any] = {
            "version": self.version,
            "query_address": self.query_address,
            "query_date": self.query_date,
            "first_date_in_database": self.first_date_in_database,
            "last_date_in_database": self.last_date_in_database,
            "relevant_statuses": self.relevant_statuses,
            "matches": [match.to_dict() for match in self.matches],
            "nearby_addresses": list(self.nearby_addresses),
        }
        return {k: v for k, v in data.items() if v is not None and v != []}

    def to_json(self) -> str:
        """Serialize the document as compact JSON."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueryResponse:
        """Parse a response document, tolerating omitted fields."""
        return cls(
            query_address=data.get("query_address"),
            query_date=data.get("query_date"),
            first_date_in_database=data.get("first_date_in_database"),
            last_date_in_database=data.get("last_date_in_database"),
            relevant_statuses=data.get("relevant_statuses"),
            matches=tuple(Match.from_dict(m) for m in data.get("matches", [])),
            nearby_addresses=tuple(data.get("nearby_addresses", [])),
            version=data.get("version", RESPONSE_VERSION),
        )

    @classmethod
    def from_json(cls, text: str) -> QueryResponse:
        """Parse a JSON response document."""
        return cls.from_dict(json.loads(text))


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Outcome of a lookup plus the response document, when one was built.

    Input outcomes (missing or invalid address/date, date too recent) and
    ``SERVER_PROBLEM`` carry no response.
    """

    outcome: QueryOutcome
    response: QueryResponse | None = None
