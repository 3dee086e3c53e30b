"""Services for GeoEval."""

from .api_client import BackendClient, ApiError

__all__ = [
    "BackendClient",
    "ApiError",
]
