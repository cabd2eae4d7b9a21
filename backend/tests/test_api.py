"""
End-to-end tests for the HTTP surface.

Requests go through FastAPI's TestClient; Sentry is mocked with respx.
"""

import logging

import httpx
import pytest
import respx
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.main import _parse_join_mode
from app.models import JoinMode
from app.services import UpstreamError
from app.utils.reshaping import MalformedUpstreamPayload

SENTRY_URL = "https://sentry.example.com"
SENTRY_HOST = "sentry.example.com"


def events_body(request):
    return httpx.Response(200, json={"data": [{"dataset": request.url.params["dataset"]}]})


@pytest.fixture
def sentry():
    """Sentry mock answering every endpoint /data touches."""
    with respx.mock(assert_all_called=False) as mock:
        mock.get(host=SENTRY_HOST, path="/api/0/organizations/", name="organizations").respond(
            200, json=[{"id": "10", "name": "Acme"}]
        )
        mock.get(host=SENTRY_HOST, path="/api/0/organizations/acme/projects/", name="projects").respond(
            200, json=[{"id": "7", "name": "web"}]
        )
        mock.get(host=SENTRY_HOST, path="/api/0/organizations/acme/events/", name="events").mock(side_effect=events_body)
        mock.get(host=SENTRY_HOST, path="/api/0/organizations/acme/events-stats/", name="events_stats").respond(
            200, json={"data": []}
        )
        yield mock


# =============================================================================
# POST /orgs and /projects
# =============================================================================

class TestOrganizations:

    def test_returns_name_id_pairs(self, client, sentry, plugin_config):
        response = client.post("/orgs", json=plugin_config)

        assert response.status_code == 200
        assert response.json() == [{"Acme": "10"}]

        request = sentry["organizations"].calls.last.request
        assert request.headers["Authorization"] == "Bearer sntrys_test_token"

    def test_missing_field_is_400_without_upstream_calls(self, client, sentry, plugin_config):
        del plugin_config["plugin_setting"]["settings_custom_fields_values_api_key"]

        response = client.post("/orgs", json=plugin_config)

        assert response.status_code == 400
        locs = [error["loc"] for error in response.json()["detail"]]
        assert locs == [["body", "plugin_setting", "settings_custom_fields_values_api_key"]]
        assert sentry.calls.call_count == 0

    def test_malformed_json_is_400_without_upstream_calls(self, client, sentry):
        response = client.post(
            "/orgs",
            content=b'{"function": "orgs", "plugin_setting": ',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert "detail" in response.json()
        assert sentry.calls.call_count == 0

    def test_unexpected_upstream_shape_is_500(self, client, error_reporter, plugin_config):
        with respx.mock() as mock:
            mock.get(host=SENTRY_HOST, path="/api/0/organizations/").respond(401, json={"detail": "Invalid token"})

            response = client.post("/orgs", json=plugin_config)

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}
        assert isinstance(error_reporter.captured[0][0], MalformedUpstreamPayload)


class TestProjects:

    def test_returns_projects_of_configured_organization(self, client, sentry, plugin_config):
        response = client.post("/projects", json=plugin_config)

        assert response.status_code == 200
        assert response.json() == [{"web": "7"}]
        assert sentry["projects"].call_count == 1

    def test_malformed_json_is_400(self, client, sentry):
        response = client.post("/projects", content=b"not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert sentry.calls.call_count == 0


# =============================================================================
# POST /data
# =============================================================================

class TestDashboardData:

    def test_returns_all_four_data_sets(self, client, sentry, data_form):
        response = client.post("/data", data=data_form)

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"errors", "events", "user_misery_apdex", "organizations"}
        assert body["organizations"] == [{"id": "10", "name": "Acme"}]
        assert body["errors"] == {"data": [{"dataset": "errors"}]}
        assert body["user_misery_apdex"] == {"data": [{"dataset": "metricsEnhanced"}]}
        assert body["events"] == {"data": []}
        assert sentry.calls.call_count == 4

    def test_24h_period_samples_every_five_minutes(self, client, sentry, data_form):
        response = client.post("/data", data=data_form)

        assert response.status_code == 200
        params = sentry["events_stats"].calls.last.request.url.params
        assert params["interval"] == "5m"
        assert params["statsPeriod"] == "24h"

    def test_unknown_period_falls_back_to_one_minute(self, client, sentry, data_form):
        data_form["period"] = "xyz"

        response = client.post("/data", data=data_form)

        assert response.status_code == 200
        params = sentry["events_stats"].calls.last.request.url.params
        assert params["interval"] == "1m"
        assert params["statsPeriod"] == "xyz"

    def test_trailing_slash_on_base_url(self, client, sentry, data_form):
        data_form["base_url"] = f"{SENTRY_URL}/"

        response = client.post("/data", data=data_form)

        assert response.status_code == 200
        assert sentry["organizations"].called

    @pytest.mark.parametrize("field", ["base_url", "api_key", "organization", "projects", "period"])
    def test_missing_form_field_is_400(self, client, sentry, data_form, field):
        del data_form[field]

        response = client.post("/data", data=data_form)

        assert response.status_code == 400
        assert [error["loc"] for error in response.json()["detail"]] == [["body", field]]
        assert sentry.calls.call_count == 0

    def test_one_failed_call_fails_everything(self, client, sentry, error_reporter, data_form):
        sentry["events_stats"].mock(side_effect=httpx.ConnectError("connection refused"))

        response = client.post("/data", data=data_form)

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}

        exc, path = error_reporter.captured[0]
        assert isinstance(exc, UpstreamError)
        assert exc.name == "events"
        assert path == "/data"

    def test_best_effort_returns_partial_results(self, make_client, sentry, error_reporter, data_form):
        client = make_client(join_mode=JoinMode.BEST_EFFORT)
        sentry["events_stats"].mock(side_effect=httpx.ConnectError("connection refused"))

        response = client.post("/data", data=data_form)

        assert response.status_code == 200
        body = response.json()
        assert body["events"] == {"error": "connection_error"}
        assert body["organizations"] == [{"id": "10", "name": "Acme"}]
        assert error_reporter.captured == []


# =============================================================================
# ROOT ENDPOINTS
# =============================================================================

def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["join_mode"] == "all_or_nothing"


def test_root_lists_endpoints(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["dashboard_data"] == "POST /data"


def test_failing_error_reporter_does_not_change_the_500(make_client, error_reporter, plugin_config):
    def broken(exc, request):
        raise RuntimeError("telemetry down")

    error_reporter.capture_exception = broken
    client = make_client()

    with respx.mock() as mock:
        mock.get(host=SENTRY_HOST, path="/api/0/organizations/").mock(
            side_effect=httpx.ConnectError("refused")
        )
        response = client.post("/orgs", json=plugin_config)

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_server_side_http_exception_is_reported(client, error_reporter, plugin_config):
    client.app.state.sentry_service = None

    response = client.post("/orgs", json=plugin_config)

    assert response.status_code == 500
    assert response.json() == {"detail": "Server not fully started yet"}
    exc, path = error_reporter.captured[0]
    assert isinstance(exc, StarletteHTTPException)
    assert path == "/orgs"


def test_unknown_route_is_not_reported(client, error_reporter):
    response = client.get("/nope")

    assert response.status_code == 404
    assert error_reporter.captured == []


# =============================================================================
# CONFIG
# =============================================================================

@pytest.mark.parametrize(
    "value,expected",
    [
        ("all_or_nothing", JoinMode.ALL_OR_NOTHING),
        ("best_effort", JoinMode.BEST_EFFORT),
        (" BEST_EFFORT ", JoinMode.BEST_EFFORT),
        ("partial", JoinMode.ALL_OR_NOTHING),
        ("", JoinMode.ALL_OR_NOTHING),
    ],
)
def test_join_mode_setting(value, expected, caplog):
    with caplog.at_level(logging.WARNING, logger="app.main"):
        assert _parse_join_mode(value) is expected

    warned = any("Unknown JOIN_MODE" in record.getMessage() for record in caplog.records)
    assert warned == (value.strip().lower() not in {"all_or_nothing", "best_effort"})
