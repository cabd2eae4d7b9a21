"""
Utility modules for the Sentry relay backend.
"""

from app.utils.intervals import (
    INTERVALS,
    DEFAULT_INTERVAL,
    RECOGNIZED_PERIODS,
    interval_for_period,
)
from app.utils.normalization import (
    clean_base_url,
    normalize_plugin_config,
    normalize_form,
)
from app.utils.reshaping import MalformedUpstreamPayload, to_name_id_pairs

__all__ = [
    "INTERVALS",
    "DEFAULT_INTERVAL",
    "RECOGNIZED_PERIODS",
    "interval_for_period",
    "clean_base_url",
    "normalize_plugin_config",
    "normalize_form",
    "MalformedUpstreamPayload",
    "to_name_id_pairs",
]
