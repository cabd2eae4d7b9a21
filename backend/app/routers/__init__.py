"""
Routers Package
===============

Routers are like the reception desk - they direct incoming requests
to the right place.
"""

from .sentry import router as sentry_router, get_sentry_service, get_join_mode

__all__ = [
    "sentry_router",
    "get_sentry_service",
    "get_join_mode",
]
