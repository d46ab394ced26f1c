"""
Whole-file descriptor reading.

[read_descriptor_file()][relaytrace.descriptors.reader.read_descriptor_file]
is synchronous and CPU-bound; the importer calls it through
``asyncio.to_thread`` so parsing never blocks the event loop.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import stem.descriptor
from stem.descriptor import DocumentHandler

from relaytrace.core.exceptions import DescriptorParseError

from .base import (
    CONSENSUS_HEADER,
    DescriptorType,
    ParseResult,
    sniff_descriptor_type,
    split_documents,
)
from .consensus import check_consensus
from .exit_list import check_exit_entry


if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from stem.descriptor import Descriptor


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DescriptorFile:
    """All parse results of one file.

    Attributes:
        path: The file that was read.
        descriptor_type: Sniffed type, or ``None`` if unrecognized (in which
            case ``results`` is empty).
        results: One result per record, in file order.
    """

    path: Path
    descriptor_type: DescriptorType | None
    results: tuple[ParseResult, ...] = ()

    @property
    def recognized(self) -> bool:
        return self.descriptor_type is not None


# Each consensus document is one record; an exit list yields one per ExitNode block
_PARSE_OPTIONS: dict[DescriptorType, tuple[dict[str, Any], Callable[[Any], None]]] = {
    DescriptorType.CONSENSUS: ({"document_handler": DocumentHandler.DOCUMENT}, check_consensus),
    DescriptorType.EXIT_LIST: ({}, check_exit_entry),
}


def _collect(
    descriptors: Iterator[Descriptor],
    check: Callable[[Any], None],
    results: list[ParseResult],
    path: Path,
) -> None:
    """Append one result per descriptor, numbering on from ``len(results)``."""
    while True:
        index = len(results)
        try:
            descriptor = next(descriptors)
        except StopIteration:
            return
        except ValueError as e:
            # stem cannot resume a stream after a structurally broken record
            error = DescriptorParseError(str(e))
            results.append(ParseResult(index=index, record=None, error=error))
            logger.warning("stream_truncated path=%s index=%d error=%s", path, index, e)
            return
        try:
            check(descriptor)
        except DescriptorParseError as e:
            results.append(ParseResult(index=index, record=None, error=e))
        else:
            results.append(ParseResult(index=index, record=descriptor, error=None))


def read_descriptor_file(path: str | Path) -> DescriptorFile:
    """Read, sniff and parse every record of a descriptor file.

    Records are parsed by ``stem.descriptor.parse_file`` without validation
    and then checked for the fields the importer needs. A file may hold
    several consensus documents back to back; each is parsed on its own.
    Per-record parse errors are captured in the returned results rather
    than raised, so one malformed record never hides the others.

    Raises:
        OSError: If the file cannot be read.
    """
    path = Path(path)
    raw = path.read_bytes()
    # Descriptors are ASCII; stray bytes only matter to the sniff
    descriptor_type = sniff_descriptor_type(raw.decode("utf-8", errors="replace").splitlines())
    if descriptor_type is None:
        return DescriptorFile(path=path, descriptor_type=None)

    if descriptor_type is DescriptorType.CONSENSUS:
        sources = split_documents(raw, CONSENSUS_HEADER)
    else:
        sources = [raw]

    options, check = _PARSE_OPTIONS[descriptor_type]
    results: list[ParseResult] = []
    for source in sources:
        descriptors = stem.descriptor.parse_file(
            io.BytesIO(source),
            descriptor_type=descriptor_type.stem_type,
            validate=False,
            **options,
        )
        _collect(descriptors, check, results, path)

    logger.debug("file_parsed path=%s type=%s records=%d", path, descriptor_type, len(results))
    return DescriptorFile(path=path, descriptor_type=descriptor_type, results=tuple(results))
