"""
One relay's appearance in one network-status consensus.

A [StatusEntry][relaytrace.models.status_entry.StatusEntry] is created once
per (consensus, relay) pair at import time and never mutated. A later
consensus listing the same relay produces a distinct entry, not an update.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from ._validation import (
    validate_instance,
    validate_optional_bool,
    validate_str_not_empty,
    validate_timestamp,
)
from .address import CanonicalAddress
from .fingerprint import fingerprint_to_base64, normalize_fingerprint


class StatusEntryDbParams(NamedTuple):
    """Positional parameters for one row of the status entry insert procedure.

    A status entry with several addresses expands into one row per address.
    """

    valid_after: int
    fingerprint: str
    nickname: str | None
    exit: bool | None
    address: str
    address_hex: str
    address_prefix: str


@dataclass(frozen=True, slots=True)
class StatusEntry:
    """Immutable status fact: a relay listed as running in a consensus.

    Attributes:
        valid_after: Unix timestamp (UTC, whole seconds) of the consensus
            ``valid-after`` line.
        fingerprint: Relay identity as 40 uppercase hex digits. Lowercase
            input is normalized.
        addresses: Non-empty set of the relay's OR addresses: the primary
            address from the ``r`` line plus any ``a`` line alternates.
        nickname: Relay nickname, or ``None`` if unknown.
        exit: ``True`` if the relay's policy summary permits exiting,
            ``False`` if it rejects all ports, ``None`` if unknown.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If the fingerprint is malformed, the timestamp is
            negative, or ``addresses`` is empty.

    Examples:
        ```python
        entry = StatusEntry(
            valid_after=1590969600,
            fingerprint="9695DFC35FFEB861329B9F1AB04C46397020CE31",
            addresses=frozenset({CanonicalAddress.from_text("86.59.21.38")}),
            nickname="moria1",
            exit=False,
        )
        len(entry.to_db_params())  # 1
        ```
    """

    valid_after: int
    fingerprint: str
    addresses: frozenset[CanonicalAddress]
    nickname: str | None = None
    exit: bool | None = None
    _db_params: tuple[StatusEntryDbParams, ...] = field(
        default=(), init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        validate_timestamp(self.valid_after, "valid_after")
        object.__setattr__(self, "fingerprint", normalize_fingerprint(self.fingerprint))
        if self.nickname is not None:
            validate_str_not_empty(self.nickname, "nickname")
        validate_optional_bool(self.exit, "exit")
        validate_instance(self.addresses, frozenset, "addresses")
        if not self.addresses:
            raise ValueError("addresses must not be empty")
        for address in self.addresses:
            validate_instance(address, CanonicalAddress, "addresses item")

        object.__setattr__(self, "_db_params", self._compute_db_params())

    def to_db_params(self) -> tuple[StatusEntryDbParams, ...]:
        """Return cached insert rows, one per address, in canonical address order."""
        return self._db_params

    def _compute_db_params(self) -> tuple[StatusEntryDbParams, ...]:
        fingerprint = fingerprint_to_base64(self.fingerprint)
        return tuple(
            StatusEntryDbParams(
                valid_after=self.valid_after,
                fingerprint=fingerprint,
                nickname=self.nickname,
                exit=self.exit,
                address=str(address),
                address_hex=address.hex,
                address_prefix=address.prefix_key,
            )
            for address in sorted(self.addresses)
        )
