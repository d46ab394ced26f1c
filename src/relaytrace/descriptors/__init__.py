"""Descriptor parsing: consensuses and exit lists.

Parsing itself is done by ``stem.descriptor``; this layer sniffs the file
type, checks the fields the importer needs and captures per-record errors.
It sits beside ``relaytrace.core``, depends only on ``relaytrace.models``
and the core exception types, and performs no storage I/O.
[read_descriptor_file()][relaytrace.descriptors.reader.read_descriptor_file]
is the only function that touches the filesystem.

Attributes:
    DescriptorType: ``CONSENSUS`` or ``EXIT_LIST``.
    check_consensus, check_exit_entry: Field checks on stem descriptors.
    read_descriptor_file: Sniff and parse a file into per-record results.
"""

from .base import DescriptorType, ParseResult, sniff_descriptor_type
from .consensus import (
    check_consensus,
    consensus_valid_after,
    is_running,
    policy_permits_exit,
    router_addresses,
)
from .exit_list import check_exit_entry, exit_addresses
from .reader import DescriptorFile, read_descriptor_file


__all__ = [
    "DescriptorFile",
    "DescriptorType",
    "ParseResult",
    "check_consensus",
    "check_exit_entry",
    "consensus_valid_after",
    "exit_addresses",
    "is_running",
    "policy_permits_exit",
    "read_descriptor_file",
    "router_addresses",
    "sniff_descriptor_type",
]
