"""
Unit tests for services.common.queries module.

Tests:
- fetch_coverage() with and without data
- fetch_status_rows() / fetch_exit_probe_rows() decoding and bad-row skipping
- insert_status_entries() / insert_exit_probes() batching
"""

import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from relaytrace.core.store import BatchConfig, StoreConfig
from relaytrace.models import CanonicalAddress, ExitProbe, StatusEntry, fingerprint_to_base64
from relaytrace.services.common.queries import (
    fetch_coverage,
    fetch_exit_probe_rows,
    fetch_status_rows,
    insert_exit_probes,
    insert_status_entries,
)
from relaytrace.services.common.types import SearchWindow


MORIA_FP = "9695DFC35FFEB861329B9F1AB04C46397020CE31"
EXIT_FP = "0011BD2485AD45D984EC4159C88FC066E5E3300E"
MIDNIGHT = 1590969600
WINDOW = SearchWindow.around(datetime.date(2020, 6, 1))


@pytest.fixture
def store() -> MagicMock:
    store = MagicMock()
    store.config = StoreConfig(batch=BatchConfig(max_size=3))
    store.fetch = AsyncMock(return_value=[])
    store.fetchrow = AsyncMock(return_value=None)
    store.insert_status_entry = AsyncMock(side_effect=lambda chunk: len(chunk))
    store.insert_exit_probe = AsyncMock(side_effect=lambda chunk: len(chunk))
    return store


# ============================================================================
# Lookup queries
# ============================================================================


class TestFetchCoverage:
    async def test_with_data(self, store: MagicMock) -> None:
        store.fetchrow.return_value = {
            "first_valid_after": MIDNIGHT - 86_400,
            "last_valid_after": MIDNIGHT + 86_400,
            "relevant_statuses": True,
        }
        coverage = await fetch_coverage(store, WINDOW)
        assert coverage.first_valid_after == MIDNIGHT - 86_400
        assert coverage.relevant_statuses is True
        assert store.fetchrow.call_args.args[1:] == (WINDOW.start, WINDOW.end)

    async def test_empty_table(self, store: MagicMock) -> None:
        store.fetchrow.return_value = {
            "first_valid_after": None,
            "last_valid_after": None,
            "relevant_statuses": False,
        }
        coverage = await fetch_coverage(store, WINDOW)
        assert coverage.empty is True

    async def test_no_row(self, store: MagicMock) -> None:
        coverage = await fetch_coverage(store, WINDOW)
        assert coverage.empty is True
        assert coverage.relevant_statuses is False


class TestFetchStatusRows:
    async def test_decodes_rows(self, store: MagicMock) -> None:
        store.fetch.return_value = [
            {
                "valid_after": MIDNIGHT,
                "fingerprint": fingerprint_to_base64(MORIA_FP),
                "nickname": "moria1",
                "exit": False,
                "address_hex": "563b1526",
            }
        ]
        rows = await fetch_status_rows(store, "563b15", WINDOW)
        assert len(rows) == 1
        assert rows[0].fingerprint == MORIA_FP
        assert rows[0].address == CanonicalAddress.from_text("86.59.21.38")
        assert rows[0].nickname == "moria1"
        assert store.fetch.call_args.args[1:] == (
            "563b15",
            WINDOW.start,
            WINDOW.end,
            WINDOW.probe_end,
        )

    async def test_skips_bad_rows(self, store: MagicMock, caplog: pytest.LogCaptureFixture) -> None:
        store.fetch.return_value = [
            {
                "valid_after": MIDNIGHT,
                "fingerprint": "short",
                "nickname": None,
                "exit": None,
                "address_hex": "563b1526",
            },
            {
                "valid_after": MIDNIGHT,
                "fingerprint": fingerprint_to_base64(MORIA_FP),
                "nickname": None,
                "exit": None,
                "address_hex": "563b15",
            },
            {
                "valid_after": MIDNIGHT,
                "fingerprint": fingerprint_to_base64(MORIA_FP),
                "nickname": None,
                "exit": None,
                "address_hex": "563b1526",
            },
        ]
        rows = await fetch_status_rows(store, "563b15", WINDOW)
        assert len(rows) == 1
        assert "Skipping invalid status row" in caplog.text


class TestFetchExitProbeRows:
    async def test_decodes_rows(self, store: MagicMock) -> None:
        store.fetch.return_value = [
            {
                "fingerprint": fingerprint_to_base64(EXIT_FP),
                "scanned_at": MIDNIGHT + 40_000,
                "address_hex": "a2f74aca",
            }
        ]
        rows = await fetch_exit_probe_rows(store, "a2f74a", WINDOW)
        assert rows[0].fingerprint == EXIT_FP
        assert str(rows[0].address) == "162.247.74.202"
        assert store.fetch.call_args.args[1:] == ("a2f74a", WINDOW.start, WINDOW.probe_end)

    async def test_skips_bad_rows(self, store: MagicMock) -> None:
        store.fetch.return_value = [
            {"fingerprint": fingerprint_to_base64(EXIT_FP), "scanned_at": 1, "address_hex": "zz"}
        ]
        assert await fetch_exit_probe_rows(store, "a2f74a", WINDOW) == []


# ============================================================================
# Insert helpers
# ============================================================================


def _entry(fingerprint: str, *addresses: str) -> StatusEntry:
    return StatusEntry(
        valid_after=MIDNIGHT,
        fingerprint=fingerprint,
        addresses=frozenset(CanonicalAddress.from_text(a) for a in addresses),
    )


class TestInsertStatusEntries:
    async def test_empty(self, store: MagicMock) -> None:
        assert await insert_status_entries(store, []) == 0
        store.insert_status_entry.assert_not_called()

    async def test_chunks_by_expanded_rows(self, store: MagicMock) -> None:
        entries = [
            _entry(MORIA_FP, "1.1.1.1", "2001:db8::1"),
            _entry(EXIT_FP, "2.2.2.2", "2001:db8::2"),
            _entry("F2044413DAC2E02E3D6BCF4735A19BCA1DE97281", "3.3.3.3"),
        ]
        inserted = await insert_status_entries(store, entries)
        chunks = [call.args[0] for call in store.insert_status_entry.call_args_list]
        assert [len(c) for c in chunks] == [1, 2]
        assert inserted == 3


class TestInsertExitProbes:
    async def test_batches(self, store: MagicMock) -> None:
        probes = [
            ExitProbe(
                fingerprint=EXIT_FP,
                scanned_at=MIDNIGHT + i,
                exit_address=CanonicalAddress.from_text("162.247.74.202"),
            )
            for i in range(7)
        ]
        assert await insert_exit_probes(store, probes) == 7
        assert [len(c.args[0]) for c in store.insert_exit_probe.call_args_list] == [3, 3, 1]

    async def test_empty(self, store: MagicMock) -> None:
        assert await insert_exit_probes(store, []) == 0
