"""
Sentry Relay Models
===================
Pydantic models for request validation and the records passed between
the normalizer, the interval mapper and the aggregator.

This module defines:
- Request models: What the dashboard plugin sends to the backend
- Internal models: Credentials and query parameters for Sentry calls
- Aggregation models: Named data sets and how their results are joined

TWO INBOUND SHAPES:
1. Plugin settings envelope (JSON) - used by /orgs and /projects
2. Flat form fields (form-encoded) - used by /data
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class JoinMode(str, Enum):
    """
    How the aggregator joins the results of concurrent upstream calls.

    - ALL_OR_NOTHING: The first failed call fails the whole job and the
      remaining calls are cancelled. Nothing partial is returned.
    - BEST_EFFORT: Every call runs to completion. Failed data sets are
      replaced by an error marker, successful ones keep their body.
    """
    ALL_OR_NOTHING = "all_or_nothing"
    BEST_EFFORT = "best_effort"


# =============================================================================
# REQUEST MODELS - What the dashboard plugin sends
# =============================================================================

class PluginSetting(BaseModel):
    """
    Settings of one plugin instance, as stored by the dashboard.

    Every field is a required string. The Sentry account details live in
    the settings_custom_fields_values_* fields; the rest describe how the
    dashboard renders the widget and are accepted but not used here.
    """
    id: str
    settings_custom_fields_values_base_url: str = Field(
        ...,
        description="Sentry base URL",
        examples=["https://sentry.io"]
    )
    settings_custom_fields_values_api_key: str = Field(
        ...,
        description="Sentry auth token, sent as a bearer token"
    )
    settings_custom_fields_values_organization: str = Field(
        ...,
        description="Organization slug",
        examples=["acme"]
    )
    settings_custom_fields_values_projects: str = Field(
        ...,
        description="Project id, or several ids joined by commas"
    )
    settings_custom_fields_values_period: str = Field(
        ...,
        description="Statistics period token",
        examples=["24h", "7d"]
    )
    settings_strategy: str
    settings_polling_verb: str
    settings_no_screen_padding: str
    settings_dark_mode: str
    name: str
    refresh_interval: str


class PluginConfigRequest(BaseModel):
    """
    Request body for POST /orgs and POST /projects.

    Example Request:
        POST /orgs
        {
            "function": "orgs",
            "plugin_setting": {
                "id": "42",
                "settings_custom_fields_values_base_url": "https://sentry.io",
                "settings_custom_fields_values_api_key": "sntrys_...",
                ...
            }
        }
    """
    function: str
    plugin_setting: PluginSetting


class DataRequest(BaseModel):
    """Form fields of POST /data, once parsed."""
    base_url: str = Field(..., description="Sentry base URL")
    api_key: str = Field(..., description="Sentry auth token")
    organization: str = Field(..., description="Organization slug")
    projects: str = Field(..., description="Project id(s), comma-joined")
    period: str = Field(..., description="Statistics period token")


# =============================================================================
# INTERNAL MODELS - Canonical inputs for every upstream call
# =============================================================================

class Credentials(BaseModel):
    """
    Where and as whom to call Sentry.

    Built per incoming request and thrown away once the response is sent.
    """
    model_config = ConfigDict(frozen=True)

    base_url: str
    api_key: str

    def headers(self) -> dict[str, str]:
        """Headers carried by every outbound request."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }


class QueryParameters(BaseModel):
    """What to ask Sentry for."""
    model_config = ConfigDict(frozen=True)

    organization: str
    projects: str
    period: str


# =============================================================================
# AGGREGATION MODELS
# =============================================================================

UrlTemplate = Callable[[Credentials, QueryParameters], str]


@dataclass(frozen=True)
class DataSetRequest:
    """
    One named upstream call of an aggregation job.

    The name becomes the key of the result in the merged mapping, so names
    must be unique within a job.
    """
    name: str
    url_template: UrlTemplate

    def build_url(self, credentials: Credentials, params: QueryParameters) -> str:
        return self.url_template(credentials, params)


@dataclass(frozen=True)
class DataSetResult:
    """Outcome of one data set: a parsed body, or an error type."""
    name: str
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_json(self) -> Any:
        """The value placed under this data set's key in the response."""
        if self.ok:
            return self.value
        return {"error": self.error}
