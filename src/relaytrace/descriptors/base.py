"""
Descriptor type sniffing, document splitting and the shared per-record result type.

Descriptor files are line-oriented. Lines starting with ``@`` are archive
annotations and carry no descriptor content, so the first content line
decides which stem parser a file is handed to.
"""

from __future__ import annotations

import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, NamedTuple


if TYPE_CHECKING:
    from collections.abc import Iterable

    from stem.descriptor import Descriptor

    from relaytrace.core.exceptions import DescriptorParseError


CONSENSUS_HEADER = "network-status-version 3"
EXIT_LIST_PREFIXES = ("Downloaded ", "ExitNode ")
ANNOTATION_PREFIX = "@"


class DescriptorType(StrEnum):
    """Descriptor kinds the importer understands.

    Each member maps to the stem ``@type`` name its files are parsed as.
    """

    CONSENSUS = "consensus"
    EXIT_LIST = "exit_list"

    @property
    def stem_type(self) -> str:
        return _STEM_TYPES[self]


_STEM_TYPES = {
    DescriptorType.CONSENSUS: "network-status-consensus-3 1.0",
    DescriptorType.EXIT_LIST: "tordnsel 1.0",
}


class ParseResult(NamedTuple):
    """Outcome of parsing one record: exactly one of ``record`` and ``error`` is set.

    Attributes:
        index: 0-based position of the record within its file.
        record: The stem descriptor on success.
        error: The parse failure otherwise.
    """

    index: int
    record: Descriptor | None
    error: DescriptorParseError | None


def is_content(raw: str) -> bool:
    """Whether a raw line carries descriptor content (not blank, not an annotation)."""
    stripped = raw.strip()
    return bool(stripped) and not stripped.startswith(ANNOTATION_PREFIX)


def sniff_descriptor_type(lines: Iterable[str]) -> DescriptorType | None:
    """Identify a file's descriptor type from its first content line.

    Returns:
        The detected type, or ``None`` when the first content line (or the
        lack of one) matches no known format.
    """
    for raw in lines:
        if not is_content(raw):
            continue
        first = raw.rstrip("\r\n")
        if first.rstrip() == CONSENSUS_HEADER:
            return DescriptorType.CONSENSUS
        if first.startswith(EXIT_LIST_PREFIXES):
            return DescriptorType.EXIT_LIST
        return None
    return None


def to_timestamp(value: datetime.datetime) -> int:
    """Unix timestamp of a naive UTC datetime as stem returns them."""
    return int(value.replace(tzinfo=datetime.UTC).timestamp())


def count_lines(descriptor: Descriptor, keyword: str) -> int:
    """Number of lines of *descriptor*'s raw text starting with *keyword*.

    stem's lenient mode skips a malformed repeated line instead of failing,
    so comparing this count against the parsed list exposes the loss.
    """
    prefix = keyword + " "
    return sum(1 for line in str(descriptor).splitlines() if line.startswith(prefix))


def split_documents(raw: bytes, header: str) -> list[bytes]:
    """Split a file into back-to-back documents at each *header* line.

    Lines before the first header stay with the first document, so no line
    is ever dropped and no two documents are ever merged.
    """
    marker = header.encode()
    documents: list[list[bytes]] = [[]]
    for line in raw.splitlines(keepends=True):
        if line.rstrip() == marker and any(
            is_content(seen.decode("utf-8", errors="replace")) for seen in documents[-1]
        ):
            documents.append([])
        documents[-1].append(line)
    return [b"".join(lines) for lines in documents]
