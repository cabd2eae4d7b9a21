"""
Sentry API Router
=================

The three doors the dashboard plugin knocks on.

HOW IT WORKS:
------------
1. The plugin POSTs its settings (JSON envelope or form fields)
2. FastAPI validates the body against the request model (400 if it's wrong)
3. We normalize it into Credentials + QueryParameters
4. SentryService makes the Sentry calls and we send back JSON

ALL ENDPOINTS:
-------------
POST   /orgs      - Organizations the token can see, as [{name: id}, ...]
POST   /projects  - Projects of the configured organization, as [{name: id}, ...]
POST   /data      - Everything the widget renders: errors, events,
                    user_misery_apdex, organizations
"""

import logging

from fastapi import APIRouter, Depends, Form, HTTPException, Request

from app.models import DataRequest, JoinMode, PluginConfigRequest
from app.services import SentryService
from app.utils.normalization import normalize_form, normalize_plugin_config

logger = logging.getLogger(__name__)


# Create the router - this groups all our Sentry endpoints together
router = APIRouter(tags=["sentry"])


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================
# The app puts its collaborators on app.state when it's created (see
# create_app in main.py). Endpoints get them through Depends, so tests can
# swap them with app.dependency_overrides.

def get_sentry_service(request: Request) -> SentryService:
    """Get the SentryService for use in endpoints."""
    service = getattr(request.app.state, "sentry_service", None)
    if service is None:
        raise HTTPException(status_code=500, detail="Server not fully started yet")
    return service


def get_join_mode(request: Request) -> JoinMode:
    """How /data joins its upstream calls (JOIN_MODE setting)."""
    return getattr(request.app.state, "join_mode", JoinMode.ALL_OR_NOTHING)


# =============================================================================
# LIST ENDPOINTS
# =============================================================================

@router.post("/orgs", response_model=list[dict[str, str]])
async def list_organizations(
    body: PluginConfigRequest,
    service: SentryService = Depends(get_sentry_service),
):
    """
    List the Sentry organizations the plugin's token can see.

    Used by the plugin settings form to fill the organization picker.
    """
    credentials, params = normalize_plugin_config(body)
    return await service.list_organizations(credentials, params)


@router.post("/projects", response_model=list[dict[str, str]])
async def list_projects(
    body: PluginConfigRequest,
    service: SentryService = Depends(get_sentry_service),
):
    """
    List the projects of the organization picked in the plugin settings.
    """
    credentials, params = normalize_plugin_config(body)
    return await service.list_projects(credentials, params)


# =============================================================================
# DASHBOARD DATA ENDPOINT
# =============================================================================

@router.post("/data")
async def dashboard_data(
    base_url: str = Form(...),
    api_key: str = Form(...),
    organization: str = Form(...),
    projects: str = Form(...),
    period: str = Form(...),
    service: SentryService = Depends(get_sentry_service),
    join_mode: JoinMode = Depends(get_join_mode),
):
    """
    Fetch everything the widget renders, all Sentry calls at once.

    Send us (form-encoded):
    - base_url: Sentry base URL (like "https://sentry.io")
    - api_key: Sentry auth token
    - organization: Organization slug
    - projects: Project id(s)
    - period: 1h, 24h, 7d, 14d, 30d or 90d (anything else samples every minute)

    We give you back the raw Sentry bodies under "errors", "events",
    "user_misery_apdex" and "organizations".
    """
    form = DataRequest(
        base_url=base_url,
        api_key=api_key,
        organization=organization,
        projects=projects,
        period=period,
    )
    credentials, params = normalize_form(form)
    logger.info(f"Dashboard data for {params.organization} over {params.period} ({join_mode.value})")
    return await service.fetch_dashboard_data(credentials, params, join_mode=join_mode)
