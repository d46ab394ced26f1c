"""Correlation query engine.

See Also:
    [lookup][relaytrace.services.query.engine.lookup]: Answer one
        address/date query against the store.
    [correlate][relaytrace.services.query.engine.correlate]: Pure join of
        fetched rows against one address.
"""

from .engine import Correlation, correlate, lookup


__all__ = ["Correlation", "correlate", "lookup"]
