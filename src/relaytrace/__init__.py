r"""relaytrace -- was this address a relay of the anonymity network on that day?

Ingests network-status consensuses and exit lists, normalizes their
addresses and validity windows, and answers point queries through a
correlation engine served over HTTP.

Architecture follows a layered dependency structure where imports flow
strictly downward:

```text
            services          importer, query engine, api
           /        \
        core      descriptors  infrastructure / descriptor parsing
           \        /
            models             pure frozen dataclasses (zero I/O)
```

Attributes:
    models: Address codec, relay facts and query response types.
    core: Connection pool, store facade, base service, run lock,
        exceptions, logging, metrics.
    descriptors: Tokenizing consensus and exit list parsers.
    services: Importer, correlation query engine, HTTP api.

Note:
    Top-level imports (``from relaytrace import Store``) use lazy loading
    and resolve on first access.
"""

import importlib
from importlib.metadata import version as _get_version


__version__ = _get_version("relaytrace")

__all__ = [
    "Api",
    "ApiConfig",
    "BaseService",
    "CanonicalAddress",
    "ConfigT",
    "ExitProbe",
    "Importer",
    "ImporterConfig",
    "Logger",
    "Match",
    "Pool",
    "PoolConfig",
    "QueryOutcome",
    "QueryResponse",
    "StatusEntry",
    "Store",
    "StoreConfig",
    "lookup",
    "parse_address",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseService": ("relaytrace.core", "BaseService"),
    "ConfigT": ("relaytrace.core", "ConfigT"),
    "Logger": ("relaytrace.core", "Logger"),
    "Pool": ("relaytrace.core", "Pool"),
    "PoolConfig": ("relaytrace.core", "PoolConfig"),
    "Store": ("relaytrace.core", "Store"),
    "StoreConfig": ("relaytrace.core", "StoreConfig"),
    "CanonicalAddress": ("relaytrace.models", "CanonicalAddress"),
    "ExitProbe": ("relaytrace.models", "ExitProbe"),
    "Match": ("relaytrace.models", "Match"),
    "QueryOutcome": ("relaytrace.models", "QueryOutcome"),
    "QueryResponse": ("relaytrace.models", "QueryResponse"),
    "StatusEntry": ("relaytrace.models", "StatusEntry"),
    "parse_address": ("relaytrace.models", "parse_address"),
    "Api": ("relaytrace.services", "Api"),
    "ApiConfig": ("relaytrace.services", "ApiConfig"),
    "Importer": ("relaytrace.services", "Importer"),
    "ImporterConfig": ("relaytrace.services", "ImporterConfig"),
    "lookup": ("relaytrace.services", "lookup"),
}


def __getattr__(name: str) -> object:
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        module = importlib.import_module(module_path)
        value = getattr(module, attr_name)
        globals()[name] = value  # Cache for subsequent access
        return value
    raise AttributeError(f"module 'relaytrace' has no attribute {name!r}")


def __dir__() -> list[str]:
    return __all__
