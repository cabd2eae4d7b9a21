"""
Period to Interval Mapping
==========================

Sentry's events-stats endpoint needs a sampling interval next to the
statistics period. The longer the period, the coarser the finest interval
Sentry will accept.

    period    interval
    ------    --------
    1h        1m
    24h       5m
    7d        30m
    14d       30m
    30d       1h
    90d       4h

Any other period falls back to DEFAULT_INTERVAL instead of failing.
"""

import logging

logger = logging.getLogger(__name__)


INTERVALS = {
    "1h": "1m",
    "24h": "5m",
    "7d": "30m",
    "14d": "30m",
    "30d": "1h",
    "90d": "4h",
}

DEFAULT_INTERVAL = "1m"

RECOGNIZED_PERIODS = frozenset(INTERVALS)


def interval_for_period(period: str) -> str:
    """
    Get the finest sampling interval Sentry accepts for a period.

    Args:
        period: Statistics period token (e.g., "24h")

    Returns:
        The interval token (e.g., "5m"), or DEFAULT_INTERVAL if the
        period is not one we recognize
    """
    interval = INTERVALS.get(period)
    if interval is None:
        logger.debug(f"Unrecognized period {period!r}, using interval {DEFAULT_INTERVAL}")
        return DEFAULT_INTERVAL
    return interval
