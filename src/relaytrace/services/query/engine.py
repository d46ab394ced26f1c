"""Correlation query engine.

Answers "was address X a relay, or a relay's exit point, on date D?" from
stored status entries and exit probes.

[lookup()][relaytrace.services.query.engine.lookup] validates input,
fetches candidate rows through ``services/common/queries.py`` and hands
them to the pure
[correlate()][relaytrace.services.query.engine.correlate] function:

1. Seed one match per ``(fingerprint, valid_after)`` with the relay's
   addresses at that consensus.
2. Join each exit probe into every match of the same relay whose
   consensus started at most ``EXIT_PROBE_GRACE_SECONDS`` before the
   probe. Probes joining nothing are orphans and are ignored.
3. Keep the matches containing the queried address, ordered by
   ``(valid_after, fingerprint)``.
4. Without direct matches, report the same-prefix addresses seen instead.

The engine is read-only and keeps no state between lookups.
"""

from __future__ import annotations

import datetime
import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

import asyncpg

from relaytrace.core.exceptions import DatabaseError
from relaytrace.models import (
    EXIT_PROBE_GRACE_SECONDS,
    AddressError,
    CanonicalAddress,
    DateError,
    Match,
    QueryOutcome,
    QueryResponse,
    QueryResult,
    is_too_recent,
    parse_address,
    parse_query_date,
)
from relaytrace.services.common.queries import (
    fetch_coverage,
    fetch_exit_probe_rows,
    fetch_status_rows,
)
from relaytrace.services.common.types import SearchWindow


if TYPE_CHECKING:
    from collections.abc import Iterable

    from relaytrace.core.store import Store
    from relaytrace.services.common.types import Coverage, ExitProbeRow, StatusRow


logger = logging.getLogger(__name__)

STORAGE_ERRORS: tuple[type[BaseException], ...] = (
    DatabaseError,
    ConnectionError,
    OSError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
)


@dataclass(frozen=True, slots=True)
class Correlation:
    """Result of correlating fetched rows against one address.

    Attributes:
        matches: Direct matches in ``(valid_after, fingerprint)`` order.
        nearby: Same-prefix addresses, sorted; empty whenever ``matches``
            is non-empty.
    """

    matches: tuple[Match, ...] = ()
    nearby: tuple[CanonicalAddress, ...] = ()


@dataclass(slots=True)
class _MatchBuilder:
    valid_after: int
    fingerprint: str
    nickname: str | None = None
    exit: bool | None = None
    addresses: set[CanonicalAddress] = field(default_factory=set)

    def build(self) -> Match:
        return Match(
            valid_after=self.valid_after,
            fingerprint=self.fingerprint,
            addresses=frozenset(self.addresses),
            nickname=self.nickname,
            exit=self.exit,
        )


def correlate(
    status_rows: Iterable[StatusRow],
    probe_rows: Iterable[ExitProbeRow],
    query_address: CanonicalAddress,
) -> Correlation:
    """Join status rows and exit probes and filter them to *query_address*.

    A probe joins a match of the same fingerprint when
    ``valid_after <= scanned_at < valid_after + EXIT_PROBE_GRACE_SECONDS``.
    """
    builders: dict[tuple[str, int], _MatchBuilder] = {}
    by_fingerprint: defaultdict[str, list[_MatchBuilder]] = defaultdict(list)

    for row in status_rows:
        key = (row.fingerprint, row.valid_after)
        builder = builders.get(key)
        if builder is None:
            builder = _MatchBuilder(
                valid_after=row.valid_after,
                fingerprint=row.fingerprint,
                nickname=row.nickname,
                exit=row.exit,
            )
            builders[key] = builder
            by_fingerprint[row.fingerprint].append(builder)
        builder.addresses.add(row.address)

    for probe in probe_rows:
        for builder in by_fingerprint.get(probe.fingerprint, ()):
            age = probe.scanned_at - builder.valid_after
            if 0 <= age < EXIT_PROBE_GRACE_SECONDS:
                builder.addresses.add(probe.address)

    matches = sorted(
        (b.build() for b in builders.values() if query_address in b.addresses),
        key=lambda m: (m.valid_after, m.fingerprint),
    )
    if matches:
        return Correlation(matches=tuple(matches))

    prefix = query_address.prefix_key
    nearby = {
        address
        for builder in builders.values()
        for address in builder.addresses
        if address.prefix_key == prefix and address != query_address
    }
    return Correlation(nearby=tuple(sorted(nearby)))


def _input_outcome(
    address: CanonicalAddress | AddressError,
    date: datetime.date | DateError,
    today: datetime.date | None,
) -> QueryOutcome | None:
    if address is AddressError.ABSENT:
        return QueryOutcome.NO_ADDRESS
    if date is DateError.ABSENT:
        return QueryOutcome.NO_DATE
    if address is AddressError.INVALID:
        return QueryOutcome.INVALID_ADDRESS
    if date is DateError.INVALID:
        return QueryOutcome.INVALID_DATE
    if isinstance(date, datetime.date) and is_too_recent(date, today):
        return QueryOutcome.DATE_TOO_RECENT
    return None


def _coverage_outcome(coverage: Coverage, date: datetime.date) -> QueryOutcome | None:
    if coverage.empty:
        return QueryOutcome.DATABASE_EMPTY
    first, last = coverage.first_date, coverage.last_date
    if first is None or last is None or date < first or date > last:
        return QueryOutcome.DATE_OUT_OF_RANGE
    if not coverage.relevant_statuses:
        return QueryOutcome.NO_DATA_FOR_WINDOW
    return None


async def lookup(
    store: Store,
    address: str | None,
    date: str | None,
    *,
    today: datetime.date | None = None,
) -> QueryResult:
    """Answer one address/date query.

    Input problems are reported without touching storage. Any storage
    failure yields ``SERVER_PROBLEM`` with no partial response.

    Args:
        store: [Store][relaytrace.core.store.Store] database interface.
        address: Raw address text from the caller.
        date: Raw ``YYYY-MM-DD`` text from the caller.
        today: Reference day for the too-recent check (defaults to the
            current UTC day).

    Returns:
        The outcome, with a response document for every outcome past input
        validation except ``SERVER_PROBLEM``.
    """
    parsed_address = parse_address(address)
    parsed_date = parse_query_date(date)

    outcome = _input_outcome(parsed_address, parsed_date, today)
    if outcome is not None:
        return QueryResult(outcome=outcome)
    assert isinstance(parsed_address, CanonicalAddress)  # noqa: S101  # Narrowed by _input_outcome
    assert isinstance(parsed_date, datetime.date)  # noqa: S101

    window = SearchWindow.around(parsed_date)
    prefix = parsed_address.prefix_key

    try:
        coverage = await fetch_coverage(store, window)
        outcome = _coverage_outcome(coverage, parsed_date)
        if outcome is None:
            status_rows = await fetch_status_rows(store, prefix, window)
            probe_rows = await fetch_exit_probe_rows(store, prefix, window)
    except STORAGE_ERRORS as e:
        logger.error("Lookup failed for %s on %s: %s", parsed_address, parsed_date, e)
        return QueryResult(outcome=QueryOutcome.SERVER_PROBLEM)

    first, last = coverage.first_date, coverage.last_date
    response = QueryResponse(
        query_address=str(parsed_address),
        query_date=parsed_date.isoformat(),
        first_date_in_database=first.isoformat() if first else None,
        last_date_in_database=last.isoformat() if last else None,
        relevant_statuses=coverage.relevant_statuses,
    )
    if outcome is not None:
        return QueryResult(outcome=outcome, response=response)

    correlation = correlate(status_rows, probe_rows, parsed_address)
    if correlation.matches:
        outcome = QueryOutcome.POSITIVE
    elif correlation.nearby:
        outcome = QueryOutcome.NEARBY
    else:
        outcome = QueryOutcome.NEGATIVE

    response = replace(
        response,
        matches=correlation.matches,
        nearby_addresses=tuple(str(a) for a in correlation.nearby),
    )
    return QueryResult(outcome=outcome, response=response)
