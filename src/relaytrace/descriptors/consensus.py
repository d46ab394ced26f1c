"""
Network-status consensus checks on top of stem's ``NetworkStatusDocumentV3``.

A consensus is read as a single document (``DocumentHandler.DOCUMENT``) with
validation off, so stem defers every field to first access and replaces an
unparsable field by its default. [check_consensus()][relaytrace.descriptors.consensus.check_consensus]
turns those silent defaults back into a
[DescriptorParseError][relaytrace.core.exceptions.DescriptorParseError] for
the fields the importer relies on.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stem import Flag

from relaytrace.core.exceptions import DescriptorParseError

from .base import count_lines, to_timestamp


if TYPE_CHECKING:
    from stem.descriptor.networkstatus import NetworkStatusDocumentV3
    from stem.descriptor.router_status_entry import RouterStatusEntryV3
    from stem.exit_policy import MicroExitPolicy


logger = logging.getLogger(__name__)

REJECT_ALL = "reject 1-65535"


def _first_line(router: RouterStatusEntryV3) -> str:
    lines = str(router).splitlines()
    return lines[0] if lines else ""


def check_consensus(document: NetworkStatusDocumentV3) -> None:
    """Reject a document the importer cannot turn into status facts.

    Raises:
        DescriptorParseError: If the document is a vote, lacks a parsable
            ``valid-after``, or holds a router entry with a malformed ``r``
            or ``a`` line.
    """
    if document.is_vote or not document.is_consensus:
        raise DescriptorParseError("network status document is not a consensus")
    if document.valid_after is None:
        raise DescriptorParseError("missing or malformed valid-after")
    for router in document.routers.values():
        if router.fingerprint is None or router.address is None or router.nickname is None:
            raise DescriptorParseError(f"malformed router entry: {_first_line(router)!r}")
        if len(router.or_addresses) != count_lines(router, "a"):
            raise DescriptorParseError(
                f"malformed alternate address for {router.fingerprint}"
            )
    logger.debug("consensus_checked routers=%d", len(document.routers))


def consensus_valid_after(document: NetworkStatusDocumentV3) -> int:
    """The consensus ``valid-after`` time as a unix timestamp."""
    return to_timestamp(document.valid_after)


def is_running(router: RouterStatusEntryV3) -> bool:
    return Flag.RUNNING in router.flags


def policy_permits_exit(policy: MicroExitPolicy | None) -> bool | None:
    """Interpret a ``p`` line summary.

    Returns:
        ``False`` for ``reject 1-65535``, ``True`` for any other summary,
        and ``None`` when the entry carries no ``p`` line.
    """
    if policy is None:
        return None
    return str(policy).strip() != REJECT_ALL


def router_addresses(router: RouterStatusEntryV3) -> tuple[str, ...]:
    """The ``r`` line address followed by every ``a`` line address, ports stripped."""
    return (router.address, *(address for address, _port, _is_ipv6 in router.or_addresses))
