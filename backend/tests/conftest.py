"""
Pytest fixtures for the Sentry relay tests.

- Plain fixtures for credentials, parameters and request bodies
- A factory for SentryService backed by httpx.MockTransport
- An app + TestClient wired with a recording error reporter
"""

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.main import create_app
from app.models import Credentials, JoinMode, QueryParameters
from app.services import SentryService


SENTRY_URL = "https://sentry.example.com"


class RecordingErrorReporter:
    """Keeps every reported exception instead of sending it anywhere."""

    def __init__(self):
        self.captured = []

    def capture_exception(self, exc, request):
        self.captured.append((exc, request.url.path))


@pytest.fixture
def credentials():
    return Credentials(base_url=SENTRY_URL, api_key="sntrys_test_token")


@pytest.fixture
def params():
    return QueryParameters(organization="acme", projects="1,2", period="24h")


@pytest.fixture
def plugin_config():
    """A valid plugin settings envelope for /orgs and /projects."""
    return {
        "function": "orgs",
        "plugin_setting": {
            "id": "42",
            "settings_custom_fields_values_base_url": SENTRY_URL,
            "settings_custom_fields_values_api_key": "sntrys_test_token",
            "settings_custom_fields_values_organization": "acme",
            "settings_custom_fields_values_projects": "1,2",
            "settings_custom_fields_values_period": "24h",
            "settings_strategy": "polling",
            "settings_polling_verb": "post",
            "settings_no_screen_padding": "no",
            "settings_dark_mode": "no",
            "name": "Sentry",
            "refresh_interval": "15",
        },
    }


@pytest.fixture
def data_form():
    """Valid form fields for /data."""
    return {
        "base_url": SENTRY_URL,
        "api_key": "sntrys_test_token",
        "organization": "acme",
        "projects": "1,2",
        "period": "24h",
    }


@pytest_asyncio.fixture
async def service_factory():
    """Build SentryServices whose HTTP client answers with a handler."""
    services = []

    def make(handler):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        service = SentryService(http_client=client)
        services.append(service)
        return service

    yield make

    for service in services:
        await service.close()


@pytest.fixture
def error_reporter():
    return RecordingErrorReporter()


@pytest.fixture
def make_client(error_reporter):
    """TestClient for a fresh app; 500s come back as responses."""

    def make(join_mode=JoinMode.ALL_OR_NOTHING):
        app = create_app(
            sentry_service=SentryService(request_timeout=5.0),
            error_reporter=error_reporter,
            join_mode=join_mode,
        )
        return TestClient(app, raise_server_exceptions=False)

    return make


@pytest.fixture
def client(make_client):
    return make_client()
