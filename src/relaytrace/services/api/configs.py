"""API service configuration models.

See Also:
    [Api][relaytrace.services.api.Api]: The service class that consumes
        these configurations.
    [BaseServiceConfig][relaytrace.core.base_service.BaseServiceConfig]:
        Base class providing ``interval``, ``max_consecutive_failures``,
        and ``metrics`` fields.
"""

from __future__ import annotations

from pydantic import Field

from relaytrace.core.base_service import BaseServiceConfig


class ApiConfig(BaseServiceConfig):
    """Configuration for the HTTP query service.

    ``interval`` controls how often request statistics are logged; the
    HTTP server itself runs continuously.

    Attributes:
        host: Bind address for the HTTP server.
        port: Port for the HTTP server.
        cors_origins: Allowed CORS origins. Empty list disables CORS.
        request_timeout: Seconds a single lookup may take before the
            request fails with 504.
    """

    host: str = Field(default="0.0.0.0", min_length=1, description="HTTP bind address")  # noqa: S104
    port: int = Field(default=8080, ge=1, le=65535, description="HTTP port")
    cors_origins: list[str] = Field(default_factory=list)
    request_timeout: float = Field(default=30.0, ge=1.0, le=300.0)
