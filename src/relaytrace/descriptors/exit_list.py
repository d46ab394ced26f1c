"""
Exit list checks on top of stem's ``TorDNSEL`` entries.

An exit list reports, per relay, the addresses that exit connections were
actually observed coming from:

```text
Downloaded 2020-06-01 12:02:02
ExitNode 0011BD2485AD45D984EC4159C88FC066E5E3300E
Published 2020-05-31 18:06:11
LastStatus 2020-06-01 11:00:00
ExitAddress 162.247.74.201 2020-06-01 11:06:38
```

stem yields one ``TorDNSEL`` per ``ExitNode`` block. Addresses are left
unvalidated here so the importer's own canonicalization decides their fate.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from stem.util import tor_tools

from relaytrace.core.exceptions import DescriptorParseError

from .base import count_lines, to_timestamp


if TYPE_CHECKING:
    from stem.descriptor.tordnsel import TorDNSEL


def check_exit_entry(entry: TorDNSEL) -> None:
    """Reject an ``ExitNode`` block the importer cannot turn into probes.

    Raises:
        DescriptorParseError: If the fingerprint is missing or malformed, or
            an ``ExitAddress`` line has an unparsable timestamp.
    """
    if entry.fingerprint is None or not tor_tools.is_valid_fingerprint(entry.fingerprint):
        raise DescriptorParseError(f"invalid ExitNode fingerprint: {entry.fingerprint!r}")
    if len(entry.exit_addresses) != count_lines(entry, "ExitAddress"):
        raise DescriptorParseError(f"malformed ExitAddress timestamp for {entry.fingerprint}")


def exit_addresses(entry: TorDNSEL) -> list[tuple[str, int]]:
    """``(address, scanned_at)`` pairs of *entry*, timestamps as unix seconds."""
    return [(address, to_timestamp(scanned)) for address, scanned in entry.exit_addresses]
