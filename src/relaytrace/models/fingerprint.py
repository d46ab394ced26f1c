"""Relay fingerprint conversions.

A fingerprint is the 20-byte relay identity. Three spellings occur:

* display form -- 40 uppercase hex digits (exit lists, query responses);
* consensus form -- unpadded base64, as found in ``r`` lines;
* storage form -- unpadded base64 (27 characters), the compact column value.

All helpers raise ``ValueError`` on malformed input so model constructors
can fail fast.
"""

from __future__ import annotations

import base64
import binascii
import re


FINGERPRINT_BYTES = 20

_HEX_FINGERPRINT = re.compile(r"[0-9A-Fa-f]{40}")


def normalize_fingerprint(value: str) -> str:
    """Return *value* as 40 uppercase hex digits.

    Raises:
        ValueError: If *value* is not exactly 40 hex digits.
    """
    if not isinstance(value, str) or not _HEX_FINGERPRINT.fullmatch(value):
        raise ValueError(f"Invalid fingerprint: {value!r}")
    return value.upper()


def fingerprint_to_base64(fingerprint: str) -> str:
    """Encode a hex fingerprint into its unpadded base64 storage form."""
    raw = bytes.fromhex(normalize_fingerprint(fingerprint))
    return base64.b64encode(raw).decode("ascii").rstrip("=")


def fingerprint_from_base64(value: str) -> str:
    """Decode an unpadded base64 identity into a hex fingerprint.

    Raises:
        ValueError: If *value* is not valid base64 or does not decode to
            exactly 20 bytes.
    """
    padded = value + "=" * (-len(value) % 4)
    try:
        raw = base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64 fingerprint: {value!r}") from e
    if len(raw) != FINGERPRINT_BYTES:
        raise ValueError(f"Fingerprint must be {FINGERPRINT_BYTES} bytes, got {len(raw)}")
    return raw.hex().upper()
