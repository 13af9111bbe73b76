"""
Thin client for the parts of the Backlog REST API (v2) used by the migration.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Final

import requests

from .exceptions import BacklogApiError, ProjectFormatError
from .models import ContentItem, Project
from .throttle import Throttle

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

# Maximum number of issues Backlog returns per request
MAX_PAGE_SIZE: Final[int] = 100
DEFAULT_TIMEOUT_SECONDS: Final[float] = 30.0


def _error_message(response: requests.Response) -> str:
    """Extract the error message from a Backlog error response, if any."""
    try:
        payload: Any = response.json()
    except ValueError:
        return response.text.strip() or response.reason or ""
    if isinstance(payload, dict):
        errors = payload.get("errors")
        if isinstance(errors, list):
            messages = [str(e.get("message", "")) for e in errors if isinstance(e, dict)]
            return "; ".join(m for m in messages if m)
    return str(payload)


def _issue_from_json(data: dict[str, Any]) -> ContentItem:
    return ContentItem(
        kind="issue",
        id=int(data["id"]),
        display_key=str(data["issueKey"]),
        title=str(data.get("summary") or ""),
        body=data.get("description") or "",
    )


def _wiki_from_json(data: dict[str, Any]) -> ContentItem:
    return ContentItem(
        kind="wiki",
        id=int(data["id"]),
        display_key=str(data["name"]),
        title=str(data["name"]),
        body=data.get("content") or "",
    )


class BacklogClient:
    """Backlog API client implementing the BacklogApi protocol.

    Authentication uses the API key as ``apiKey`` query parameter. All failures,
    including malformed payloads, are raised as BacklogApiError.
    """

    def __init__(
        self,
        host: str,
        api_key: str,
        *,
        session: requests.Session | None = None,
        page_size: int = MAX_PAGE_SIZE,
        throttle: Throttle | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            msg = f"Page size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}"
            raise ValueError(msg)

        self.host: str = host
        self.base_url: str = f"https://{host}/api/v2"
        self.page_size: int = page_size
        self.timeout: float = timeout
        self._api_key: str = api_key
        self._session: requests.Session = session or requests.Session()
        self._throttle: Throttle = throttle or Throttle()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """Perform an API call and return the decoded JSON body."""
        url = f"{self.base_url}{path}"
        query = {**(params or {}), "apiKey": self._api_key}
        logger.debug(f"{method} {url} {params or ''}")

        try:
            response = self._session.request(method, url, params=query, data=data, timeout=self.timeout)
        except requests.RequestException as e:
            msg = f"{method} {path} failed: {e}"
            raise BacklogApiError(msg) from e

        if not response.ok:
            msg = f"{method} {path} failed with HTTP {response.status_code}: {_error_message(response)}"
            raise BacklogApiError(msg, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            msg = f"{method} {path} returned invalid JSON"
            raise BacklogApiError(msg, status_code=response.status_code) from e

    def _get_item(self, path: str, parse: Callable[[dict[str, Any]], ContentItem]) -> ContentItem:
        data = self._request("GET", path)
        try:
            return parse(data)
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Unexpected response for GET {path}: {e}"
            raise BacklogApiError(msg) from e

    def get_project(self, project_key: str) -> Project:
        """Get a project and validate that it uses Markdown formatting."""
        logger.debug(f"Fetching project: {project_key}")
        data = self._request("GET", f"/projects/{project_key}")
        try:
            project = Project(
                id=int(data["id"]),
                key=str(data["projectKey"]),
                name=str(data["name"]),
                text_formatting_rule=str(data["textFormattingRule"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Unexpected project payload for {project_key}: {e}"
            raise BacklogApiError(msg) from e

        if not project.markdown_enabled:
            msg = f"Project {project_key} does not use markdown formatting (uses: {project.text_formatting_rule})"
            raise ProjectFormatError(msg)

        logger.info(f"Project validated: {project.name} (ID: {project.id}) uses markdown")
        return project

    def iter_issues(self, project_id: int) -> Iterator[ContentItem]:
        """Yield all issues of a project, one page at a time.

        Stops at the first page shorter than the page size. Calling it again
        restarts from the first page.
        """
        offset = 0
        while True:
            logger.debug(f"Fetching issues with offset: {offset}, count: {self.page_size}")
            page = self._request(
                "GET",
                "/issues",
                params={"projectId[]": [project_id], "offset": offset, "count": self.page_size},
            )
            if not isinstance(page, list):
                msg = f"Unexpected issue list payload for project {project_id}"
                raise BacklogApiError(msg)

            for data in page:
                try:
                    yield _issue_from_json(data)
                except (KeyError, TypeError, ValueError) as e:
                    msg = f"Unexpected issue payload in project {project_id}: {e}"
                    raise BacklogApiError(msg) from e

            if len(page) < self.page_size:
                return
            offset += self.page_size
            self._throttle.pause()

    def list_issues(self, project_id: int) -> list[ContentItem]:
        issues = list(self.iter_issues(project_id))
        logger.info(f"Found total {len(issues)} issues for project {project_id}")
        return issues

    def get_issue(self, issue_id: int) -> ContentItem:
        logger.debug(f"Fetching issue details: {issue_id}")
        return self._get_item(f"/issues/{issue_id}", _issue_from_json)

    def update_issue(self, issue_id: int, description: str) -> None:
        logger.debug(f"Updating issue {issue_id}")
        self._request("PATCH", f"/issues/{issue_id}", data={"description": description})
        logger.info(f"Successfully updated issue {issue_id}")

    def list_wikis(self, project_id: int) -> list[ContentItem]:
        logger.debug(f"Fetching wikis for project ID: {project_id}")
        data = self._request("GET", "/wikis", params={"projectIdOrKey": project_id})
        if not isinstance(data, list):
            msg = f"Unexpected wiki list payload for project {project_id}"
            raise BacklogApiError(msg)
        try:
            wikis = [_wiki_from_json(wiki) for wiki in data]
        except (KeyError, TypeError, ValueError) as e:
            msg = f"Unexpected wiki payload in project {project_id}: {e}"
            raise BacklogApiError(msg) from e
        logger.info(f"Found {len(wikis)} wikis")
        return wikis

    def get_wiki(self, wiki_id: int) -> ContentItem:
        logger.debug(f"Fetching wiki details: {wiki_id}")
        return self._get_item(f"/wikis/{wiki_id}", _wiki_from_json)

    def update_wiki(self, wiki_id: int, content: str) -> None:
        logger.debug(f"Updating wiki {wiki_id}")
        self._request("PATCH", f"/wikis/{wiki_id}", data={"content": content})
        logger.info(f"Successfully updated wiki {wiki_id}")
