"""HTTP query service.

See Also:
    [Api][relaytrace.services.api.service.Api]: The service class.
    [ApiConfig][relaytrace.services.api.configs.ApiConfig]: Service configuration.
"""

from .configs import ApiConfig
from .service import Api


__all__ = ["Api", "ApiConfig"]
