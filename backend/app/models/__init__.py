"""
Models Package
==============

This is where all our data models live.
Import from here instead of the individual files.

Example:
    from app.models import Credentials, PluginConfigRequest
"""

from .sentry import (
    # How concurrent upstream results are joined
    JoinMode,

    # What the dashboard plugin sends us
    PluginSetting,
    PluginConfigRequest,
    DataRequest,

    # Canonical inputs for Sentry calls
    Credentials,
    QueryParameters,

    # Aggregation jobs and their outcomes
    DataSetRequest,
    DataSetResult,
)

__all__ = [
    "JoinMode",
    "PluginSetting",
    "PluginConfigRequest",
    "DataRequest",
    "Credentials",
    "QueryParameters",
    "DataSetRequest",
    "DataSetResult",
]
