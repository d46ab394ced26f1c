"""
Unit tests for descriptors.base module.

Tests:
- Content line detection
- Descriptor type sniffing and stem type names
- Document splitting
- Timestamp conversion and raw line counting
"""

import datetime

import pytest

from relaytrace.descriptors.base import (
    CONSENSUS_HEADER,
    DescriptorType,
    count_lines,
    is_content,
    sniff_descriptor_type,
    split_documents,
    to_timestamp,
)
from tests.fixtures.descriptors import VALID_AFTER, exit_list_text, parse_exit_list_text


class TestIsContent:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("r moria1 x", True),
            ("", False),
            ("   ", False),
            ("@type network-status-consensus-3 1.0", False),
        ],
    )
    def test_is_content(self, raw: str, expected: bool) -> None:
        assert is_content(raw) is expected


class TestSniff:
    def test_consensus(self, consensus_raw: str) -> None:
        assert sniff_descriptor_type(consensus_raw.splitlines()) is DescriptorType.CONSENSUS

    def test_exit_list(self, exit_list_raw: str) -> None:
        assert sniff_descriptor_type(exit_list_raw.splitlines()) is DescriptorType.EXIT_LIST

    def test_exit_list_starting_with_exit_node(self) -> None:
        lines = ["ExitNode 0011BD2485AD45D984EC4159C88FC066E5E3300E"]
        assert sniff_descriptor_type(lines) is DescriptorType.EXIT_LIST

    def test_unknown(self) -> None:
        assert sniff_descriptor_type(["router moria1 86.59.21.38 9101 0 0"]) is None

    def test_empty(self) -> None:
        assert sniff_descriptor_type(["@type x", ""]) is None

    def test_vote_header_is_still_consensus_format(self) -> None:
        assert sniff_descriptor_type(["network-status-version 3"]) is DescriptorType.CONSENSUS

    def test_other_version_unknown(self) -> None:
        assert sniff_descriptor_type(["network-status-version 2"]) is None

    def test_microdescriptor_consensus_unknown(self) -> None:
        assert sniff_descriptor_type(["network-status-version 3 microdesc"]) is None


class TestDescriptorType:
    def test_stem_types(self) -> None:
        assert DescriptorType.CONSENSUS.stem_type == "network-status-consensus-3 1.0"
        assert DescriptorType.EXIT_LIST.stem_type == "tordnsel 1.0"


class TestHelpers:
    def test_to_timestamp_treats_naive_as_utc(self) -> None:
        assert to_timestamp(datetime.datetime(2020, 6, 1)) == VALID_AFTER

    def test_count_lines(self) -> None:
        (entry,) = parse_exit_list_text(exit_list_text())
        assert count_lines(entry, "ExitAddress") == 1
        assert count_lines(entry, "ExitNode") == 1
        assert count_lines(entry, "Exit") == 0


class TestSplitDocuments:
    def test_back_to_back(self) -> None:
        raw = b"@type x\nnetwork-status-version 3\na\nnetwork-status-version 3\nb\n"
        assert split_documents(raw, CONSENSUS_HEADER) == [
            b"@type x\nnetwork-status-version 3\na\n",
            b"network-status-version 3\nb\n",
        ]

    def test_single_document(self, consensus_raw: str) -> None:
        raw = consensus_raw.encode()
        assert split_documents(raw, CONSENSUS_HEADER) == [raw]

    def test_header_with_suffix_does_not_split(self) -> None:
        raw = b"network-status-version 3\nnetwork-status-version 3 microdesc\n"
        assert len(split_documents(raw, CONSENSUS_HEADER)) == 1

    def test_empty(self) -> None:
        assert split_documents(b"", CONSENSUS_HEADER) == [b""]
