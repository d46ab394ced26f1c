"""Domain-specific database queries for relaytrace services.

All SQL used by services is centralized here. Each function accepts a
[Store][relaytrace.core.store.Store] instance and returns typed results;
services import from this module instead of writing inline SQL.

Functions are grouped into two categories:

- **Lookup queries**: ``fetch_coverage``, ``fetch_status_rows``,
  ``fetch_exit_probe_rows``
- **Insert helpers**: ``insert_status_entries``, ``insert_exit_probes``

Rows decode exactly once, here, into
[StatusRow][relaytrace.services.common.types.StatusRow] and
[ExitProbeRow][relaytrace.services.common.types.ExitProbeRow]. A stored
row whose fingerprint or address cannot be decoded is skipped with a
warning so one bad row never fails a whole lookup.

Warning:
    All reads use ``timeouts.query`` from
    [StoreTimeoutsConfig][relaytrace.core.store.StoreTimeoutsConfig]; the
    inserts delegate to Store methods using ``timeouts.batch``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from relaytrace.models.address import CanonicalAddress
from relaytrace.models.fingerprint import fingerprint_from_base64

from .types import Coverage, ExitProbeRow, SearchWindow, StatusRow


if TYPE_CHECKING:
    from collections.abc import Iterator

    from relaytrace.core.store import Store
    from relaytrace.models import ExitProbe, StatusEntry

logger = logging.getLogger(__name__)


# =============================================================================
# Lookup queries
# =============================================================================


async def fetch_coverage(store: Store, window: SearchWindow) -> Coverage:
    """Fetch the stored consensus span and whether *window* holds any consensus.

    ``relevant_statuses`` ignores the queried address: it distinguishes
    "we had no data for those days" from "we had data and your address
    was not in it".
    """
    row = await store.fetchrow(
        """
        SELECT
            MIN(valid_after) AS first_valid_after,
            MAX(valid_after) AS last_valid_after,
            EXISTS (
                SELECT 1 FROM status_entry
                WHERE valid_after >= $1 AND valid_after < $2
            ) AS relevant_statuses
        FROM status_entry
        """,
        window.start,
        window.end,
    )
    if row is None:
        return Coverage(first_valid_after=None, last_valid_after=None, relevant_statuses=False)
    return Coverage(
        first_valid_after=row["first_valid_after"],
        last_valid_after=row["last_valid_after"],
        relevant_statuses=bool(row["relevant_statuses"]),
    )


async def fetch_status_rows(store: Store, prefix: str, window: SearchWindow) -> list[StatusRow]:
    """Fetch every address row of the status entries relevant to a prefix.

    A status entry is relevant when its consensus falls in *window* and
    either one of its addresses shares *prefix*, or its relay has an exit
    probe from an address sharing *prefix*. Entries are returned whole
    (all their addresses), so a match lists the relay's full address set.

    Args:
        store: [Store][relaytrace.core.store.Store] database interface.
        prefix: ``prefix_key`` of the queried address.
        window: Consensus time range around the query date.
    """
    rows = await store.fetch(
        """
        SELECT s.valid_after, s.fingerprint, s.nickname, s.exit, s.address_hex
        FROM status_entry s
        WHERE s.valid_after >= $2 AND s.valid_after < $3
          AND (
              EXISTS (
                  SELECT 1 FROM status_entry m
                  WHERE m.valid_after = s.valid_after
                    AND m.fingerprint = s.fingerprint
                    AND m.address_prefix = $1
              )
              OR s.fingerprint IN (
                  SELECT e.fingerprint FROM exit_probe e
                  WHERE e.address_prefix = $1
                    AND e.scanned_at >= $2 AND e.scanned_at < $4
              )
          )
        ORDER BY s.valid_after, s.fingerprint, s.address_hex
        """,
        prefix,
        window.start,
        window.end,
        window.probe_end,
    )
    result: list[StatusRow] = []
    for row in rows:
        try:
            result.append(
                StatusRow(
                    valid_after=row["valid_after"],
                    fingerprint=fingerprint_from_base64(row["fingerprint"]),
                    address=CanonicalAddress.from_hex(row["address_hex"]),
                    nickname=row["nickname"],
                    exit=row["exit"],
                )
            )
        except (ValueError, TypeError) as e:
            logger.warning(
                "Skipping invalid status row %s@%s: %s",
                row["fingerprint"],
                row["valid_after"],
                e,
            )
    return result


async def fetch_exit_probe_rows(
    store: Store, prefix: str, window: SearchWindow
) -> list[ExitProbeRow]:
    """Fetch exit probes from addresses sharing *prefix*.

    The scan range extends one day past the window end, which covers every
    probe that can join a status entry inside the window.
    """
    rows = await store.fetch(
        """
        SELECT fingerprint, scanned_at, address_hex
        FROM exit_probe
        WHERE address_prefix = $1 AND scanned_at >= $2 AND scanned_at < $3
        ORDER BY scanned_at, fingerprint
        """,
        prefix,
        window.start,
        window.probe_end,
    )
    result: list[ExitProbeRow] = []
    for row in rows:
        try:
            result.append(
                ExitProbeRow(
                    fingerprint=fingerprint_from_base64(row["fingerprint"]),
                    scanned_at=row["scanned_at"],
                    address=CanonicalAddress.from_hex(row["address_hex"]),
                )
            )
        except (ValueError, TypeError) as e:
            logger.warning(
                "Skipping invalid exit probe %s@%s: %s",
                row["fingerprint"],
                row["scanned_at"],
                e,
            )
    return result


# =============================================================================
# Insert helpers
# =============================================================================


def _chunk_status_entries(
    entries: list[StatusEntry], max_rows: int
) -> Iterator[list[StatusEntry]]:
    """Group entries so that no chunk expands to more than *max_rows* rows.

    An entry is never split across chunks.
    """
    chunk: list[StatusEntry] = []
    rows = 0
    for entry in entries:
        size = len(entry.to_db_params())
        if chunk and rows + size > max_rows:
            yield chunk
            chunk, rows = [], 0
        chunk.append(entry)
        rows += size
    if chunk:
        yield chunk


async def insert_status_entries(store: Store, entries: list[StatusEntry]) -> int:
    """Bulk-insert status entries in batches of ``batch.max_size`` rows.

    Already stored rows are skipped (``ON CONFLICT DO NOTHING``).

    Returns:
        Number of new rows inserted.
    """
    if not entries:
        return 0

    inserted = 0
    for chunk in _chunk_status_entries(entries, store.config.batch.max_size):
        inserted += await store.insert_status_entry(chunk)
    return inserted


async def insert_exit_probes(store: Store, probes: list[ExitProbe]) -> int:
    """Bulk-insert exit probes in batches of ``batch.max_size``.

    Returns:
        Number of new probes inserted.
    """
    if not probes:
        return 0

    inserted = 0
    batch_size = store.config.batch.max_size
    for i in range(0, len(probes), batch_size):
        inserted += await store.insert_exit_probe(probes[i : i + batch_size])
    return inserted
