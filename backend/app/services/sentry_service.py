"""
Sentry Service
==============

This is the piece that actually talks to Sentry.

WHAT THIS DOES:
--------------
1. Builds Sentry REST API URLs from the plugin's settings
2. Fires all the GETs for one dashboard request at the same time
3. Waits for every one of them (one join point, no sequential loop)
4. Merges the parsed JSON bodies into one dict, keyed by data set name

HOW SENTRY AUTH WORKS:
---------------------
Every call carries the plugin's auth token as a bearer token:

    Authorization: Bearer <api_key>

THE DATA FLOW:
-------------
    POST /data (base_url, api_key, organization, period, ...)
            |
            | one task per data set
            v
    +---------+---------+--------------------+---------------+
    | errors  | events  | user_misery_apdex  | organizations |
    +---------+---------+--------------------+---------------+
            |
            | join (all-or-nothing or best-effort)
            v
    {"errors": {...}, "events": {...}, ...}

The organization and project lists are the same thing with a single data
set, followed by a reshape into [{name: id}, ...].
"""

import asyncio
import logging
from typing import Any, Optional, Sequence

import httpx

from app.models import (
    Credentials,
    DataSetRequest,
    DataSetResult,
    JoinMode,
    QueryParameters,
)
from app.utils.intervals import interval_for_period
from app.utils.reshaping import to_name_id_pairs

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class UpstreamError(Exception):
    """
    One Sentry call failed.

    error_type is one of: "timeout", "connection_error", "transport_error",
    "invalid_json". It is safe to show to the dashboard; message is not.
    """

    def __init__(self, name: str, error_type: str, message: str):
        super().__init__(f"[{name}] {error_type}: {message}")
        self.name = name
        self.error_type = error_type
        self.message = message


# =============================================================================
# DATA SETS
# =============================================================================

def _organizations_url(credentials: Credentials, params: QueryParameters) -> str:
    return f"{credentials.base_url}/api/0/organizations/"


def _projects_url(credentials: Credentials, params: QueryParameters) -> str:
    return f"{credentials.base_url}/api/0/organizations/{params.organization}/projects/"


def _errors_url(credentials: Credentials, params: QueryParameters) -> str:
    return (
        f"{credentials.base_url}/api/0/organizations/{params.organization}/events/"
        "?dataset=errors"
        "&field=count_unique%28issue%29"
        "&field=count%28%29"
        "&name=&per_page=20&query="
        "&sort=count%28%29"
        f"&statsPeriod={params.period}"
        "&yAxis=count%28%29"
    )


def _events_url(credentials: Credentials, params: QueryParameters) -> str:
    return (
        f"{credentials.base_url}/api/0/organizations/{params.organization}/events-stats/"
        "?dataset=errors"
        f"&interval={interval_for_period(params.period)}"
        f"&statsPeriod={params.period}"
    )


def _user_misery_apdex_url(credentials: Credentials, params: QueryParameters) -> str:
    return (
        f"{credentials.base_url}/api/0/organizations/{params.organization}/events/"
        "?dataset=metricsEnhanced"
        "&field=apdex%28300%29"
        "&field=user_misery%28300%29"
        "&name=&onDemandType=dynamic_query&per_page=20&query="
        f"&statsPeriod={params.period}"
        "&useOnDemandMetrics=false"
        "&yAxis=user_misery%28300%29"
    )


# What the dashboard widget renders
DASHBOARD_DATA_SETS = (
    DataSetRequest("errors", _errors_url),
    DataSetRequest("events", _events_url),
    DataSetRequest("user_misery_apdex", _user_misery_apdex_url),
    DataSetRequest("organizations", _organizations_url),
)

ORGANIZATIONS_DATA_SET = (DataSetRequest("organizations", _organizations_url),)

PROJECTS_DATA_SET = (DataSetRequest("projects", _projects_url),)


# =============================================================================
# THE MAIN SERVICE CLASS
# =============================================================================

class SentryService:
    """
    This class handles every call we make to Sentry.

    HOW TO USE:
    ----------
    # Create the service (done automatically at startup)
    service = SentryService(request_timeout=30.0)

    # Everything for the dashboard widget, in one go
    data = await service.fetch_dashboard_data(credentials, params)
    data["events"]  # raw events-stats body

    # Or any set of named calls
    data = await service.fan_out(my_data_sets, credentials, params)
    """

    def __init__(self, request_timeout: float = 30.0, http_client: Optional[httpx.AsyncClient] = None):
        """
        Set up the service.

        Args:
            request_timeout: How long to wait for each Sentry call (seconds).
                            A slow Sentry fails that call instead of stalling
                            the whole request.
            http_client: Use this client instead of creating one
        """
        # One client for all requests so connections can be reused
        self.http_client = http_client or httpx.AsyncClient(timeout=request_timeout)


    async def fetch_json(self, url: str, credentials: Credentials, name: str = "request") -> Any:
        """
        GET one Sentry URL and parse the body as JSON.

        Args:
            url: Full Sentry API URL
            credentials: Whose token to send
            name: Data set name, used in logs and errors

        Returns:
            The parsed JSON body

        Raises:
            UpstreamError: If the call times out, cannot connect, fails in
                transport, or the body is not JSON

        Error statuses with a JSON body (e.g. {"detail": "Invalid token"})
        are passed through as they are; the dashboard shows Sentry's message.
        """
        logger.debug(f"[{name}] GET {url}")

        try:
            response = await self.http_client.get(url, headers=credentials.headers())
        except httpx.TimeoutException as e:
            raise UpstreamError(name, "timeout", f"Sentry did not answer in time: {e}") from e
        except httpx.ConnectError as e:
            raise UpstreamError(name, "connection_error", f"Cannot connect to Sentry: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(name, "transport_error", str(e)) from e

        if response.is_error:
            logger.warning(f"[{name}] Sentry answered HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                name,
                "invalid_json",
                f"HTTP {response.status_code} body is not JSON: {response.text[:200]}"
            ) from e


    async def _fetch_data_set(
        self,
        request: DataSetRequest,
        credentials: Credentials,
        params: QueryParameters,
    ) -> DataSetResult:
        url = request.build_url(credentials, params)
        value = await self.fetch_json(url, credentials, name=request.name)
        return DataSetResult(name=request.name, value=value)


    async def _fetch_data_set_or_marker(
        self,
        request: DataSetRequest,
        credentials: Credentials,
        params: QueryParameters,
    ) -> DataSetResult:
        try:
            return await self._fetch_data_set(request, credentials, params)
        except UpstreamError as e:
            logger.warning(f"[{request.name}] Failed, returning error marker: {e.message}")
            return DataSetResult(name=request.name, error=e.error_type)


    async def fan_out(
        self,
        requests: Sequence[DataSetRequest],
        credentials: Credentials,
        params: QueryParameters,
        join_mode: JoinMode = JoinMode.ALL_OR_NOTHING,
    ) -> dict[str, Any]:
        """
        Run every data set request at once and merge the results by name.

        Args:
            requests: Named URL templates; names must be unique
            credentials: Shared by every call
            params: Substituted into every URL template
            join_mode: ALL_OR_NOTHING fails on the first failed call and
                       cancels the rest. BEST_EFFORT waits for all calls and
                       puts {"error": <error_type>} under each failed name.

        Returns:
            {name: parsed body (or error marker)} with exactly the request names

        Raises:
            UpstreamError: In ALL_OR_NOTHING mode, the first failure
            ValueError: If two requests share a name
        """
        names = [request.name for request in requests]
        if len(set(names)) != len(names):
            raise ValueError(f"Data set names must be unique, got {names}")

        fetch = (
            self._fetch_data_set
            if join_mode is JoinMode.ALL_OR_NOTHING
            else self._fetch_data_set_or_marker
        )
        tasks = [
            asyncio.create_task(fetch(request, credentials, params))
            for request in requests
        ]

        try:
            results = await asyncio.gather(*tasks)
        finally:
            # Reached with pending tasks only when the join was abandoned
            # (a failure in ALL_OR_NOTHING mode, or the caller went away)
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                logger.info(f"Cancelled {len(pending)} unfinished Sentry call(s)")
                await asyncio.wait(pending)

        failed = [result.name for result in results if not result.ok]
        logger.info(
            f"Fetched {len(results) - len(failed)}/{len(results)} data sets"
            + (f", failed: {', '.join(failed)}" if failed else "")
        )
        return {result.name: result.as_json() for result in results}


    # =========================================================================
    # WHAT THE ROUTES CALL
    # =========================================================================

    async def list_organizations(self, credentials: Credentials, params: QueryParameters) -> list[dict[str, str]]:
        """
        Get the organizations the token can see, as [{name: id}, ...].
        """
        results = await self.fan_out(ORGANIZATIONS_DATA_SET, credentials, params)
        return to_name_id_pairs(results["organizations"])


    async def list_projects(self, credentials: Credentials, params: QueryParameters) -> list[dict[str, str]]:
        """
        Get the projects of params.organization, as [{name: id}, ...].
        """
        results = await self.fan_out(PROJECTS_DATA_SET, credentials, params)
        return to_name_id_pairs(results["projects"])


    async def fetch_dashboard_data(
        self,
        credentials: Credentials,
        params: QueryParameters,
        join_mode: JoinMode = JoinMode.ALL_OR_NOTHING,
    ) -> dict[str, Any]:
        """
        Everything the dashboard widget renders, in one dict.

        Returns:
            {
                "errors": {...},             # top errors by count
                "events": {...},             # error counts over time
                "user_misery_apdex": {...},  # apdex and user misery
                "organizations": [...]       # raw organization list
            }
        """
        return await self.fan_out(DASHBOARD_DATA_SETS, credentials, params, join_mode=join_mode)


    async def close(self):
        """
        Clean up when we're done.

        Called when the server shuts down.
        """
        await self.http_client.aclose()
