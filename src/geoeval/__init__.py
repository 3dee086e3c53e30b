"""GeoEval - check whether AI assistants recommend a website for local questions."""

__version__ = "1.0.0"
__author__ = "GeoEval Team"

from .core.models import *
from .core.config import settings
from .services.api_client import BackendClient, ApiError

__all__ = [
    "settings",
    "BackendClient",
    "ApiError",
]
