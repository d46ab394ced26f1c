"""Pure frozen dataclasses with zero I/O for addresses, relay facts, and query results.

The models layer is the foundation of the dependency graph. It has **no
dependencies** on any other relaytrace package -- only the Python standard
library. Every model uses ``@dataclass(frozen=True, slots=True)`` and
validates in ``__post_init__`` so invalid instances never escape the
constructor.

Attributes:
    CanonicalAddress: Fixed-width IPv4/IPv6 address with ``hex`` and
        ``prefix_key`` forms. See [relaytrace.models.address][].
    StatusEntry: A relay listed as running in one consensus.
    ExitProbe: One observed exit address of one relay at one probe time.
    Match: One reconciled query result row.
    QueryResponse: The versioned query response document.
    QueryOutcome: Enumeration of distinguishable lookup results.

Note:
    Database parameter containers use ``NamedTuple`` and are cached in
    ``__post_init__`` via ``object.__setattr__``, the standard workaround
    for computed fields on frozen dataclasses.
"""

from .address import AddressError, CanonicalAddress, parse_address, prefix_key
from .constants import (
    DAY_SECONDS,
    EXIT_PROBE_GRACE_SECONDS,
    SEARCH_WINDOW_AFTER_SECONDS,
    SEARCH_WINDOW_BEFORE_SECONDS,
    AddressFamily,
    ServiceName,
)
from .exit_probe import ExitProbe, ExitProbeDbParams
from .fingerprint import fingerprint_from_base64, fingerprint_to_base64, normalize_fingerprint
from .query_date import DateError, is_too_recent, parse_query_date
from .query_response import Match, QueryOutcome, QueryResponse, QueryResult
from .status_entry import StatusEntry, StatusEntryDbParams


__all__ = [
    "DAY_SECONDS",
    "EXIT_PROBE_GRACE_SECONDS",
    "SEARCH_WINDOW_AFTER_SECONDS",
    "SEARCH_WINDOW_BEFORE_SECONDS",
    "AddressError",
    "AddressFamily",
    "CanonicalAddress",
    "DateError",
    "ExitProbe",
    "ExitProbeDbParams",
    "Match",
    "QueryOutcome",
    "QueryResponse",
    "QueryResult",
    "ServiceName",
    "StatusEntry",
    "StatusEntryDbParams",
    "fingerprint_from_base64",
    "fingerprint_to_base64",
    "is_too_recent",
    "normalize_fingerprint",
    "parse_address",
    "parse_query_date",
    "prefix_key",
]
