"""
News API - HTTP surface over the news cache.
"""

from .app import build_registry, create_app
from .facade import RequestFacade, to_response


__all__ = [
    "create_app",
    "build_registry",
    "RequestFacade",
    "to_response",
]
