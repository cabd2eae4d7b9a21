"""
Config Normalization
====================

Turns the two inbound request shapes into the Credentials and
QueryParameters pair used by every Sentry call.

Field presence and types are already enforced by the pydantic request
models, so these functions never fail on a validated request.
"""

from app.models import (
    Credentials,
    DataRequest,
    PluginConfigRequest,
    QueryParameters,
)


def clean_base_url(base_url: str) -> str:
    """
    Strip trailing slashes so paths can be appended with a leading "/".

    Args:
        base_url: Base URL as typed into the plugin settings

    Returns:
        "https://sentry.io/" becomes "https://sentry.io"
    """
    return base_url.rstrip("/")


def normalize_plugin_config(request: PluginConfigRequest) -> tuple[Credentials, QueryParameters]:
    """Read credentials and parameters out of a plugin settings envelope."""
    settings = request.plugin_setting
    credentials = Credentials(
        base_url=clean_base_url(settings.settings_custom_fields_values_base_url),
        api_key=settings.settings_custom_fields_values_api_key,
    )
    params = QueryParameters(
        organization=settings.settings_custom_fields_values_organization,
        projects=settings.settings_custom_fields_values_projects,
        period=settings.settings_custom_fields_values_period,
    )
    return credentials, params


def normalize_form(request: DataRequest) -> tuple[Credentials, QueryParameters]:
    """Read credentials and parameters out of the flat /data form."""
    credentials = Credentials(
        base_url=clean_base_url(request.base_url),
        api_key=request.api_key,
    )
    params = QueryParameters(
        organization=request.organization,
        projects=request.projects,
        period=request.period,
    )
    return credentials, params
