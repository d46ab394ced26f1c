"""Shared constants for the models layer.

Defines enumerations and time constants that are used across multiple
model modules and by the query engine. Placing them here avoids circular
dependencies between the models, descriptors, and services layers.

See Also:
    [relaytrace.models.address][]: Uses
        [AddressFamily][relaytrace.models.constants.AddressFamily] to tag
        every canonical address.
    [relaytrace.services.query][]: Uses the day-based constants to build
        search and join windows.
"""

from __future__ import annotations

from enum import StrEnum


class AddressFamily(StrEnum):
    """IP address family of a [CanonicalAddress][relaytrace.models.address.CanonicalAddress].

    The family decides the width of the packed form (4 or 16 bytes) and the
    width of the prefix key used for neighbourhood grouping (/24 or /48).

    Attributes:
        V4: Dotted-quad IPv4 address, 4 bytes, 8 hex digits.
        V6: Colon-hextet IPv6 address, 16 bytes, 32 hex digits.
    """

    V4 = "v4"
    V6 = "v6"


class ServiceName(StrEnum):
    """Canonical service identifiers used in logging and metrics.

    Attributes:
        IMPORTER: Batch import of consensuses and exit lists
            ([Importer][relaytrace.services.importer.Importer]).
        API: HTTP query endpoint
            ([Api][relaytrace.services.api.Api]).
    """

    IMPORTER = "importer"
    API = "api"


# Exact 24-hour arithmetic, never calendar-aware
DAY_SECONDS = 86_400

# An exit probe corroborates a status entry for one day after its valid-after
EXIT_PROBE_GRACE_SECONDS = DAY_SECONDS

# Status entries are searched in [date - 1 day, date + 2 days)
SEARCH_WINDOW_BEFORE_SECONDS = DAY_SECONDS
SEARCH_WINDOW_AFTER_SECONDS = 2 * DAY_SECONDS

# Dates this close to today are not yet fully covered by published data
RECENT_DATE_DAYS = 2
