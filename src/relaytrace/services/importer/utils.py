"""Importer utility functions.

Filesystem scanning and descriptor-to-fact conversion. Everything here is
synchronous and runs in a worker thread via ``asyncio.to_thread``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from relaytrace.core.exceptions import AddressIntegrityError, DescriptorParseError
from relaytrace.descriptors import (
    DescriptorType,
    exit_addresses,
    is_running,
    policy_permits_exit,
    read_descriptor_file,
    router_addresses,
    consensus_valid_after,
)
from relaytrace.models import CanonicalAddress, ExitProbe, StatusEntry, parse_address


if TYPE_CHECKING:
    from stem.descriptor.networkstatus import NetworkStatusDocumentV3
    from stem.descriptor.router_status_entry import RouterStatusEntryV3
    from stem.descriptor.tordnsel import TorDNSEL


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SourceFile:
    """A regular file found under the import directory.

    Attributes:
        name: Path relative to the import directory, POSIX style. Used as
            the cursor key.
        path: Absolute or working-directory-relative path for reading.
        mtime_ms: Modification time in milliseconds.
    """

    name: str
    path: Path
    mtime_ms: int


@dataclass(slots=True)
class FileFacts:
    """Facts extracted from one descriptor file.

    Attributes:
        descriptor_type: Sniffed type, ``None`` if the file was not recognized.
        status_entries: Facts from Running router entries of every consensus.
        exit_probes: Facts from every ``ExitAddress`` line of every exit list.
        parse_errors: Records that failed to parse, as ``(index, error)``.
        dropped: Entries dropped for an unusable address (non-strict mode).
    """

    descriptor_type: DescriptorType | None
    status_entries: list[StatusEntry] = field(default_factory=list)
    exit_probes: list[ExitProbe] = field(default_factory=list)
    parse_errors: list[tuple[int, DescriptorParseError]] = field(default_factory=list)
    dropped: int = 0


def scan_import_dir(import_dir: Path) -> list[SourceFile]:
    """List regular files under *import_dir*, recursively, sorted by name."""
    files: list[SourceFile] = []
    for path in import_dir.rglob("*"):
        if not path.is_file():
            continue
        files.append(
            SourceFile(
                name=path.relative_to(import_dir).as_posix(),
                path=path,
                mtime_ms=path.stat().st_mtime_ns // 1_000_000,
            )
        )
    files.sort(key=lambda f: f.name)
    return files


def _canonical(text: str, *, context: str, strict: bool) -> CanonicalAddress | None:
    result = parse_address(text)
    if isinstance(result, CanonicalAddress):
        return result
    if strict:
        raise AddressIntegrityError(f"cannot canonicalize address {text!r} ({context})")
    logger.error("Dropping %s: cannot canonicalize address %r", context, text)
    return None


def router_status_to_entry(
    valid_after: int, router: RouterStatusEntryV3, *, strict: bool
) -> StatusEntry | None:
    """Convert one stem router entry into a status fact.

    The address set is the ``r`` line address plus every ``a`` line
    address. Returns ``None`` when an address is unusable and *strict* is
    off.

    Raises:
        AddressIntegrityError: If an address is unusable and *strict* is on.
    """
    context = f"{router.fingerprint}@{valid_after}"
    addresses: set[CanonicalAddress] = set()
    for text in router_addresses(router):
        address = _canonical(text, context=context, strict=strict)
        if address is None:
            return None
        addresses.add(address)
    return StatusEntry(
        valid_after=valid_after,
        fingerprint=router.fingerprint,
        addresses=frozenset(addresses),
        nickname=router.nickname,
        exit=policy_permits_exit(router.exit_policy),
    )


def consensus_to_facts(
    document: NetworkStatusDocumentV3, facts: FileFacts, *, strict: bool
) -> None:
    """Append a status fact for every Running entry of *document* to *facts*."""
    timestamp = consensus_valid_after(document)
    for router in document.routers.values():
        if not is_running(router):
            continue
        entry = router_status_to_entry(timestamp, router, strict=strict)
        if entry is None:
            facts.dropped += 1
        else:
            facts.status_entries.append(entry)


def exit_entry_to_facts(entry: TorDNSEL, facts: FileFacts, *, strict: bool) -> None:
    """Append an exit probe fact for every ``ExitAddress`` of *entry* to *facts*."""
    for text, scanned_at in exit_addresses(entry):
        address = _canonical(text, context=f"{entry.fingerprint}@{scanned_at}", strict=strict)
        if address is None:
            facts.dropped += 1
            continue
        facts.exit_probes.append(
            ExitProbe(
                fingerprint=entry.fingerprint,
                scanned_at=scanned_at,
                exit_address=address,
            )
        )


def load_file_facts(path: Path, *, strict: bool) -> FileFacts:
    """Read one descriptor file and convert every parsed record into facts.

    Raises:
        OSError: If the file cannot be read.
        AddressIntegrityError: In strict mode, on an unusable address.
    """
    parsed = read_descriptor_file(path)
    facts = FileFacts(descriptor_type=parsed.descriptor_type)
    for result in parsed.results:
        if result.error is not None:
            facts.parse_errors.append((result.index, result.error))
        elif parsed.descriptor_type is DescriptorType.CONSENSUS:
            consensus_to_facts(result.record, facts, strict=strict)
        else:
            exit_entry_to_facts(result.record, facts, strict=strict)
    return facts
