"""
Canonical, order-comparable IP addresses with subnet prefix keys.

Converts external address text (dotted-quad IPv4, bracketed or bare IPv6)
into a fixed-width binary form so that addresses coming from consensuses,
exit lists, and user queries compare equal whenever they denote the same
host. Two derived strings drive storage and lookup:

* ``hex`` -- the full 8 or 32 lowercase hex digits, used for exact equality.
* ``prefix_key`` -- the leading 6 or 12 hex digits (/24 for IPv4, /48 for
  IPv6), used to group addresses into the same neighbourhood.

Parsing is strict: the accepted grammar is deliberately narrower than the
standard library's ``ipaddress`` module (no IPv4-embedded IPv6, no zone
ids, leading zeros in IPv4 octets accepted and normalized away), so that
every accepted string maps to exactly one canonical value.

Examples:
    ```python
    addr = CanonicalAddress.from_text("86.59.21.38")
    addr.hex         # '563b1526'
    addr.prefix_key  # '563b15'
    str(addr)        # '86.59.21.38'

    parse_address("")          # AddressError.ABSENT
    parse_address("1.2.3.256") # AddressError.INVALID
    ```
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from ipaddress import IPv6Address
from typing import ClassVar

from ._validation import validate_instance
from .constants import AddressFamily


class AddressError(StrEnum):
    """Reason an address could not be turned into a [CanonicalAddress][relaytrace.models.address.CanonicalAddress].

    Attributes:
        ABSENT: No address was supplied (``None``, empty, or whitespace only).
        INVALID: Something was supplied but it is not a valid address.
    """

    ABSENT = "absent"
    INVALID = "invalid"


_V4_OCTET = re.compile(r"[0-9]{1,3}")
_V6_BODY = re.compile(r"[0-9A-Fa-f:]{3,39}")
_V4_OCTET_MAX = 255
_V6_HEXTETS = 8
_V6_HEXTET_DIGITS = 4


@dataclass(frozen=True, slots=True, order=True)
class CanonicalAddress:
    """Immutable canonical form of an IPv4 or IPv6 address.

    Ordering compares the family first (IPv4 before IPv6) and then the
    packed bytes, which yields numeric address order within a family.

    Attributes:
        family: [AddressFamily][relaytrace.models.constants.AddressFamily]
            of the address.
        packed: Network-order binary form, 4 bytes for IPv4 and 16 for IPv6.

    Raises:
        TypeError: If ``family`` or ``packed`` have the wrong type.
        ValueError: If ``packed`` does not have the width of ``family``.
    """

    family: AddressFamily
    packed: bytes

    _WIDTH: ClassVar[dict[AddressFamily, int]] = {AddressFamily.V4: 4, AddressFamily.V6: 16}
    _PREFIX_DIGITS: ClassVar[dict[AddressFamily, int]] = {
        AddressFamily.V4: 6,
        AddressFamily.V6: 12,
    }

    def __post_init__(self) -> None:
        validate_instance(self.family, AddressFamily, "family")
        validate_instance(self.packed, bytes, "packed")
        width = self._WIDTH[self.family]
        if len(self.packed) != width:
            raise ValueError(
                f"{self.family} address must be {width} bytes, got {len(self.packed)}"
            )

    @property
    def hex(self) -> str:
        """Full lowercase hex form (8 digits for IPv4, 32 for IPv6)."""
        return self.packed.hex()

    @property
    def prefix_key(self) -> str:
        """Leading hex digits shared by the /24 (IPv4) or /48 (IPv6) neighbourhood."""
        return self.hex[: self._PREFIX_DIGITS[self.family]]

    @property
    def bracketed(self) -> str:
        """Display form with IPv6 wrapped in square brackets."""
        if self.family is AddressFamily.V6:
            return f"[{self}]"
        return str(self)

    def __str__(self) -> str:
        if self.family is AddressFamily.V4:
            return ".".join(str(octet) for octet in self.packed)
        return IPv6Address(self.packed).compressed

    @classmethod
    def from_text(cls, text: str) -> CanonicalAddress:
        """Parse address text into its canonical form.

        Surrounding whitespace is ignored. Text containing a colon is parsed
        as IPv6, anything else as IPv4.

        Raises:
            ValueError: If the text is empty or not a valid address.
        """
        validate_instance(text, str, "text")
        text = text.strip()
        if not text:
            raise ValueError("address is empty")
        if ":" in text:
            return cls(AddressFamily.V6, _parse_v6(text))
        return cls(AddressFamily.V4, _parse_v4(text))

    @classmethod
    def from_hex(cls, value: str) -> CanonicalAddress:
        """Rebuild an address from its stored ``hex`` form.

        Raises:
            ValueError: If *value* is not 8 or 32 hex digits.
        """
        validate_instance(value, str, "value")
        if len(value) == 8:  # noqa: PLR2004
            family = AddressFamily.V4
        elif len(value) == 32:  # noqa: PLR2004
            family = AddressFamily.V6
        else:
            raise ValueError(f"address hex must be 8 or 32 digits, got {len(value)}")
        return cls(family, bytes.fromhex(value))


def _parse_v4(text: str) -> bytes:
    octets = text.split(".")
    if len(octets) != 4:  # noqa: PLR2004
        raise ValueError(f"IPv4 address must have 4 octets: {text!r}")
    values: list[int] = []
    for octet in octets:
        if not _V4_OCTET.fullmatch(octet):
            raise ValueError(f"Invalid IPv4 octet {octet!r} in {text!r}")
        value = int(octet)
        if value > _V4_OCTET_MAX:
            raise ValueError(f"IPv4 octet {value} out of range in {text!r}")
        values.append(value)
    return bytes(values)


def _parse_v6(text: str) -> bytes:
    body = text
    if body.startswith("[") or body.endswith("]"):
        if not (body.startswith("[") and body.endswith("]")):
            raise ValueError(f"Unbalanced brackets in {text!r}")
        body = body[1:-1]
    if not _V6_BODY.fullmatch(body):
        raise ValueError(f"Invalid IPv6 characters or length in {text!r}")
    if (body.startswith(":") and not body.startswith("::")) or (
        body.endswith(":") and not body.endswith("::")
    ):
        raise ValueError(f"Lone colon at the edge of {text!r}")

    # A leading or trailing "::" collapses to a single empty hextet
    start = 1 if body.startswith("::") else 0
    end = len(body) - 1 if body.endswith("::") else len(body)
    hextets = body[start:end].split(":")

    if hextets.count("") > 1:
        raise ValueError(f"More than one zero run in {text!r}")
    if any(len(h) > _V6_HEXTET_DIGITS for h in hextets):
        raise ValueError(f"Hextet longer than 4 digits in {text!r}")

    explicit = [h for h in hextets if h]
    if "" in hextets:
        if len(explicit) >= _V6_HEXTETS:
            raise ValueError(f"Zero run leaves no room in {text!r}")
        zero_run = "0" * _V6_HEXTET_DIGITS * (_V6_HEXTETS - len(explicit))
    elif len(explicit) != _V6_HEXTETS:
        raise ValueError(f"IPv6 address must have 8 hextets: {text!r}")
    else:
        zero_run = ""

    digits = "".join(h.zfill(_V6_HEXTET_DIGITS) if h else zero_run for h in hextets)
    return bytes.fromhex(digits)


def parse_address(text: str | None) -> CanonicalAddress | AddressError:
    """Parse address text without raising.

    Callers can tell "nothing supplied" from "something bad supplied":

    Returns:
        The [CanonicalAddress][relaytrace.models.address.CanonicalAddress],
        ``AddressError.ABSENT`` for ``None``/blank input, or
        ``AddressError.INVALID`` for anything that does not parse.
    """
    if text is None or not text.strip():
        return AddressError.ABSENT
    try:
        return CanonicalAddress.from_text(text)
    except ValueError:
        return AddressError.INVALID


def prefix_key(address: CanonicalAddress) -> str:
    """Return the neighbourhood key of *address* (/24 for IPv4, /48 for IPv6)."""
    return address.prefix_key
