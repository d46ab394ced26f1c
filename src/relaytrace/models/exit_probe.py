"""
One externally observed exit address for one relay at one probe instant.

Exit probes have a lifecycle independent of status entries: a probe may
name a fingerprint that appears in no nearby consensus. Such orphan probes
are kept in storage and simply never join a match at query time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from ._validation import validate_instance, validate_timestamp
from .address import CanonicalAddress
from .fingerprint import fingerprint_to_base64, normalize_fingerprint


class ExitProbeDbParams(NamedTuple):
    """Positional parameters for the exit probe insert procedure."""

    fingerprint: str
    scanned_at: int
    exit_address: str
    address_hex: str
    address_prefix: str


@dataclass(frozen=True, slots=True)
class ExitProbe:
    """Immutable exit probe fact from an exit list ``ExitAddress`` line.

    Attributes:
        fingerprint: Relay identity as 40 uppercase hex digits.
        scanned_at: Unix timestamp (UTC, whole seconds) of the probe.
        exit_address: Address the probe connection came from.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If the fingerprint is malformed or the timestamp is
            negative.
    """

    fingerprint: str
    scanned_at: int
    exit_address: CanonicalAddress
    _db_params: ExitProbeDbParams | None = field(
        default=None, init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "fingerprint", normalize_fingerprint(self.fingerprint))
        validate_timestamp(self.scanned_at, "scanned_at")
        validate_instance(self.exit_address, CanonicalAddress, "exit_address")
        object.__setattr__(
            self,
            "_db_params",
            ExitProbeDbParams(
                fingerprint=fingerprint_to_base64(self.fingerprint),
                scanned_at=self.scanned_at,
                exit_address=str(self.exit_address),
                address_hex=self.exit_address.hex,
                address_prefix=self.exit_address.prefix_key,
            ),
        )

    def to_db_params(self) -> ExitProbeDbParams:
        """Return cached positional parameters for the insert procedure."""
        assert self._db_params is not None  # noqa: S101  # Always set in __post_init__
        return self._db_params
