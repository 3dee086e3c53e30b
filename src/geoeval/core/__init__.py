"""Core modules for GeoEval."""

from .models import *
from .config import settings
from .matching import is_found, normalize_domain
from .highlight import tokenize, Token, TokenKind
from .state import DashboardState, Status, InvalidTransition

__all__ = [
    "settings",
    "Company",
    "Project",
    "Analysis",
    "Category",
    "QuestionResult",
    "MetricGroup",
    "GeoMetrics",
    "Provider",
    "is_found",
    "normalize_domain",
    "tokenize",
    "Token",
    "TokenKind",
    "DashboardState",
    "Status",
    "InvalidTransition",
]
