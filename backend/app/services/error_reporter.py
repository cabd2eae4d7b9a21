"""
Error Reporter
==============

Where unhandled exceptions go so someone can look at them later.

The app gets a reporter handed to it (see create_app in main.py) instead of
reaching for a global, so tests can pass in their own and nothing else in
the app needs to know telemetry exists.

A reporter is anything with:

    def capture_exception(self, exc: BaseException, request: Request) -> None
"""

import logging

from fastapi import Request

logger = logging.getLogger(__name__)


class LoggingErrorReporter:
    """
    Reports unhandled exceptions to the log, with a traceback.

    Args:
        release: Release identifier attached to every report
    """

    def __init__(self, release: str = "dev"):
        self.release = release

    def capture_exception(self, exc: BaseException, request: Request) -> None:
        logger.error(
            f"Unhandled {type(exc).__name__} on {request.method} {request.url.path} "
            f"(release {self.release}): {exc}",
            exc_info=(type(exc), exc, exc.__traceback__),
        )
