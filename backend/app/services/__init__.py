"""
Services Package
================

These are the "workers" that do the actual work.

- SentryService: Talks to the Sentry REST API
- LoggingErrorReporter: Records unhandled exceptions
"""

from .sentry_service import (
    SentryService,
    UpstreamError,
    DASHBOARD_DATA_SETS,
    ORGANIZATIONS_DATA_SET,
    PROJECTS_DATA_SET,
)
from .error_reporter import LoggingErrorReporter

__all__ = [
    "SentryService",
    "UpstreamError",
    "DASHBOARD_DATA_SETS",
    "ORGANIZATIONS_DATA_SET",
    "PROJECTS_DATA_SET",
    "LoggingErrorReporter",
]
