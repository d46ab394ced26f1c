"""Services: the importer, the query engine and its HTTP surface.

Services are the top layer, depending on [relaytrace.core][relaytrace.core],
[relaytrace.descriptors][relaytrace.descriptors] and
[relaytrace.models][relaytrace.models].

```text
descriptor files -> Importer -> store -> lookup() -> Api (/query.json)
```

Attributes:
    Importer: Incremental, restart-safe import of consensuses and exit
        lists from a local directory.
    Api: FastAPI service answering address/date lookups.
    lookup: The correlation query engine, usable without the HTTP layer.

Examples:
    ```python
    from relaytrace.core import Store
    from relaytrace.services import lookup

    store = Store.from_yaml("config/store.yaml")
    async with store:
        result = await lookup(store, "86.59.21.38", "2020-06-01")
    ```
"""

from .api import Api, ApiConfig
from .importer import Importer, ImporterConfig
from .query import correlate, lookup


__all__ = [
    "Api",
    "ApiConfig",
    "Importer",
    "ImporterConfig",
    "correlate",
    "lookup",
]
