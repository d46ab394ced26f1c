"""relaytrace exception hierarchy.

Typed exceptions for every error category, so callers can tell transient
storage failures from malformed descriptors and from operational conflicts
such as a concurrent import run.

Exception hierarchy:

```text
RelayTraceError (base -- never raised directly)
├── ConfigurationError         -- config validation, missing keys, bad YAML
├── DatabaseError               -- pool/store/query failures
│   ├── ConnectionPoolError     -- transient: pool exhausted, network blip
│   └── QueryError              -- permanent: bad SQL, constraint violation
├── DescriptorError             -- descriptor content problems
│   ├── DescriptorParseError    -- one record is malformed (skip it)
│   └── AddressIntegrityError   -- a well-formed entry has an unusable address
└── ImportLockedError           -- another import run holds the lock
```

See Also:
    [Importer][relaytrace.services.importer.Importer]: Logs and skips
        [DescriptorParseError][relaytrace.core.exceptions.DescriptorParseError],
        aborts on
        [AddressIntegrityError][relaytrace.core.exceptions.AddressIntegrityError].
    [BaseService][relaytrace.core.base_service.BaseService]: Catches all
        exceptions in the
        [run_forever()][relaytrace.core.base_service.BaseService.run_forever]
        loop.
"""

from __future__ import annotations


class RelayTraceError(Exception):
    """Base exception for all relaytrace errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(RelayTraceError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class DatabaseError(RelayTraceError):
    """Base for all database-related errors."""


class ConnectionPoolError(DatabaseError, ConnectionError):
    """Transient database error: pool exhausted, connection refused, network blip.

    Also a builtin ``ConnectionError`` so generic network error handling
    catches it. Callers may retry after a backoff.
    """


class QueryError(DatabaseError):
    """Permanent database error: bad SQL, constraint violation, data integrity.

    Callers should NOT retry -- the query itself is wrong.
    """


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


class DescriptorError(RelayTraceError):
    """Base for problems with descriptor file content."""


class DescriptorParseError(DescriptorError):
    """A single descriptor record lacks or garbles a field the importer needs.

    The importer logs the record and continues with the rest of the batch.
    """


class AddressIntegrityError(DescriptorError):
    """An otherwise well-formed entry carries an address that cannot be canonicalized.

    Signals drift between the address codec and the upstream format, so the
    importer aborts the run instead of storing a fact with a missing address.
    """


# ---------------------------------------------------------------------------
# Import coordination
# ---------------------------------------------------------------------------


class ImportLockedError(RelayTraceError):
    """Another import run holds a fresh lock marker.

    See Also:
        [RunLock][relaytrace.core.lock.RunLock]: The marker file that raises
            this error on acquisition.
    """
