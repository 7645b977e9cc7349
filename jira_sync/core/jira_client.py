"""Async client for the Jira Cloud REST API v3."""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from jira_sync.core.entities import Issue, Project
from jira_sync.core.logging_utils import redact_token, sanitize_for_logging
from jira_sync.core.mapper import map_issue, map_project
from jira_sync.core.rate_limiter import BackoffConfig, RateLimiter


logger = logging.getLogger(__name__)

SEARCH_PATH = "/rest/api/3/search/jql"
PROJECTS_PATH = "/rest/api/3/project"
SEARCH_FIELDS = [
    "project",
    "summary",
    "description",
    "issuetype",
    "priority",
    "created",
    "updated",
]
MAX_RESULTS = 100


class JiraApiError(Exception):
    """Network, HTTP or decoding failure talking to Jira."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class JiraSearchRequest(BaseModel):
    """Request body for POST /rest/api/3/search/jql."""
    model_config = ConfigDict(populate_by_name=True)

    jql: str
    fields: List[str] = Field(default_factory=lambda: list(SEARCH_FIELDS))
    max_results: int = Field(MAX_RESULTS, alias="maxResults")
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")


class JiraSearchResponse(BaseModel):
    """One page of search results. Issue records stay raw for tolerant mapping."""
    model_config = ConfigDict(populate_by_name=True)

    issues: List[Any] = Field(default_factory=list)
    is_last: bool = Field(False, alias="isLast")
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")


@dataclass(frozen=True)
class SearchCursor:
    """Position inside one paginated search session. Never persisted."""

    jql: str
    next_page_token: Optional[str] = None
    page_number: int = 0


def build_jql(project_keys: Sequence[str], since: datetime) -> str:
    """
    Build the JQL filter for issues in the given projects updated at/after `since`.

    Examples:
        >>> build_jql(["PROJ", "OPS"], datetime(2024, 1, 15, 10, 30, 59))
        "project in (PROJ, OPS) AND updated >= '2024-01-15 10:30'"
    """
    if since.tzinfo is not None:
        since = since.astimezone(timezone.utc)
    keys = ", ".join(project_keys)
    return f"project in ({keys}) AND updated >= '{since.strftime('%Y-%m-%d %H:%M')}'"


class JiraClient:
    """Wrapper for Jira API interactions."""

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        *,
        timeout: float = 30.0,
        page_size: int = MAX_RESULTS,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Jira site URL, e.g. https://example.atlassian.net
            email: Account email used for basic auth
            api_token: API token used for basic auth
            timeout: Per-request timeout in seconds
            page_size: maxResults for search pages (Jira caps it at 100)
            rate_limiter: Pacing and retry policy (defaults to 1s pacing, 500ms/x2/30s backoff)
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.email = email
        self.page_size = min(page_size, MAX_RESULTS)
        self.rate_limiter = rate_limiter or RateLimiter(delay_ms=1000, backoff=BackoffConfig())
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            auth=(email, api_token),
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )
        logger.debug(
            f"Jira client configured for {self.base_url} as {email} "
            f"(token {redact_token(api_token)})"
        )

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "JiraClient":
        """Build a client from application Settings."""
        rate_limiter = RateLimiter(
            delay_ms=settings.jira_page_delay_ms,
            backoff=BackoffConfig.from_settings(settings),
        )
        return cls(
            settings.jira_base_url,
            settings.jira_email,
            settings.jira_api_token,
            timeout=settings.jira_api_timeout,
            page_size=settings.jira_page_size,
            rate_limiter=rate_limiter,
            **kwargs,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "JiraClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        """Perform one HTTP request and decode the JSON body."""
        logger.debug(f"Jira request: {method} {path}")
        try:
            response = await self._http.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise JiraApiError(f"Failed to send request to Jira: {e}") from e

        if not response.is_success:
            body = sanitize_for_logging(response.text)
            logger.error(f"Jira API error: status={response.status_code}, body={body}")
            raise JiraApiError(
                f"Jira API returned error: {response.status_code} - {body}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise JiraApiError(f"Failed to parse Jira response: {e}") from e

    async def _search(self, cursor: SearchCursor) -> JiraSearchResponse:
        request = JiraSearchRequest(
            jql=cursor.jql,
            max_results=self.page_size,
            next_page_token=cursor.next_page_token,
        )
        payload = request.model_dump(by_alias=True, exclude_none=True)

        async def attempt() -> JiraSearchResponse:
            data = await self._request("POST", SEARCH_PATH, json=payload)
            try:
                return JiraSearchResponse.model_validate(data)
            except ValidationError as e:
                raise JiraApiError(f"Failed to parse Jira response: {e}") from e

        return await self.rate_limiter.execute_with_retry(
            attempt,
            operation_name=f"search page {cursor.page_number + 1}",
            is_retryable=lambda e: isinstance(e, JiraApiError),
        )

    # ------------------------------------------------------------------
    # Issues
    # ------------------------------------------------------------------

    async def fetch_page(self, cursor: SearchCursor) -> Tuple[List[Issue], Optional[SearchCursor]]:
        """
        Fetch one page of issues.

        Returns the mapped issues and the cursor for the next page, or None
        when this was the last page. Raises JiraApiError once retries are
        exhausted.
        """
        if cursor.page_number > 0:
            await self.rate_limiter.delay()

        response = await self._search(cursor)

        issues = []
        for raw in response.issues:
            issue = map_issue(raw)
            if issue is not None:
                issues.append(issue)

        dropped = len(response.issues) - len(issues)
        logger.debug(
            f"Fetched page {cursor.page_number + 1}: {len(issues)} issues"
            + (f" ({dropped} dropped)" if dropped else "")
        )

        if response.is_last or not response.next_page_token:
            return issues, None
        return issues, replace(
            cursor,
            next_page_token=response.next_page_token,
            page_number=cursor.page_number + 1,
        )

    async def fetch_issue_batches(
        self,
        project_keys: Sequence[str],
        since: datetime,
    ) -> AsyncIterator[List[Issue]]:
        """
        Lazily yield batches of issues, one per page, in source order.

        Nothing is requested when `project_keys` is empty. A page that fails
        after retries raises JiraApiError and ends the sequence.
        """
        if not project_keys:
            logger.warning("No project keys provided, skipping issue search")
            return

        cursor: Optional[SearchCursor] = SearchCursor(jql=build_jql(project_keys, since))
        self.rate_limiter.start_tracking()
        logger.info(f"Searching Jira issues: {sanitize_for_logging(cursor.jql)}")

        while cursor is not None:
            issues, cursor = await self.fetch_page(cursor)
            yield issues

        logger.info(f"Jira issue search finished: {self.rate_limiter.get_metrics()}")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def fetch_projects(self) -> List[Project]:
        """Fetch every visible project, dropping records that cannot be mapped."""
        data = await self.rate_limiter.execute_with_retry(
            lambda: self._request("GET", PROJECTS_PATH),
            operation_name="fetch projects",
            is_retryable=lambda e: isinstance(e, JiraApiError),
        )
        if not isinstance(data, list):
            raise JiraApiError("Unexpected /project response: expected a list")

        projects = [p for p in (map_project(raw) for raw in data) if p is not None]
        logger.debug(f"Fetched {len(projects)} projects from Jira")
        return projects
