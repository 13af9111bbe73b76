"""
Pytest configuration and fixtures.

Provides an in-memory Backlog API so the migrator can be exercised without
network access, and a throttle that never sleeps.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from backlog_gfm_migrator.exceptions import BacklogApiError, ProjectFormatError
from backlog_gfm_migrator.models import ContentItem, Project
from backlog_gfm_migrator.throttle import Throttle

if TYPE_CHECKING:
    from collections.abc import Generator


class FakeBacklogApi:
    """In-memory implementation of the BacklogApi protocol.

    Items listed in fail_get / fail_update raise BacklogApiError when fetched
    or updated. Every call is recorded in `calls`.
    """

    def __init__(
        self,
        *,
        project: Project | None = None,
        issues: list[ContentItem] | None = None,
        wikis: list[ContentItem] | None = None,
    ) -> None:
        self.project: Project = project or Project(id=1, key="PROJ", name="Project", text_formatting_rule="markdown")
        self.items: dict[tuple[str, int], ContentItem] = {}
        for item in [*(issues or []), *(wikis or [])]:
            self.items[(item.kind, item.id)] = item
        self.fail_get: set[tuple[str, int]] = set()
        self.fail_update: set[tuple[str, int]] = set()
        self.calls: list[tuple[str, object]] = []
        self.updates: list[tuple[str, int, str]] = []

    def _list(self, kind: str) -> list[ContentItem]:
        return [
            ContentItem(kind=item.kind, id=item.id, display_key=item.display_key, title=item.title)
            for (item_kind, _), item in self.items.items()
            if item_kind == kind
        ]

    def _get(self, kind: str, item_id: int) -> ContentItem:
        self.calls.append((f"get_{kind}", item_id))
        if (kind, item_id) in self.fail_get:
            msg = f"GET /{kind}s/{item_id} failed with HTTP 500"
            raise BacklogApiError(msg, status_code=500)
        return self.items[(kind, item_id)]

    def _update(self, kind: str, item_id: int, body: str) -> None:
        self.calls.append((f"update_{kind}", item_id))
        if (kind, item_id) in self.fail_update:
            msg = f"PATCH /{kind}s/{item_id} failed with HTTP 400"
            raise BacklogApiError(msg, status_code=400)
        self.updates.append((kind, item_id, body))
        old = self.items[(kind, item_id)]
        self.items[(kind, item_id)] = ContentItem(
            kind=old.kind, id=old.id, display_key=old.display_key, title=old.title, body=body
        )

    def get_project(self, project_key: str) -> Project:
        self.calls.append(("get_project", project_key))
        if not self.project.markdown_enabled:
            msg = f"Project {project_key} does not use markdown formatting"
            raise ProjectFormatError(msg)
        return self.project

    def list_issues(self, project_id: int) -> list[ContentItem]:
        self.calls.append(("list_issues", project_id))
        return self._list("issue")

    def get_issue(self, issue_id: int) -> ContentItem:
        return self._get("issue", issue_id)

    def update_issue(self, issue_id: int, description: str) -> None:
        self._update("issue", issue_id, description)

    def list_wikis(self, project_id: int) -> list[ContentItem]:
        self.calls.append(("list_wikis", project_id))
        return self._list("wiki")

    def get_wiki(self, wiki_id: int) -> ContentItem:
        return self._get("wiki", wiki_id)

    def update_wiki(self, wiki_id: int, content: str) -> None:
        self._update("wiki", wiki_id, content)


def make_issue(item_id: int, description: str, key: str | None = None) -> ContentItem:
    return ContentItem(
        kind="issue",
        id=item_id,
        display_key=key or f"PROJ-{item_id}",
        title=f"Issue {item_id}",
        body=description,
    )


def make_wiki(item_id: int, content: str, name: str | None = None) -> ContentItem:
    name = name or f"Page{item_id}"
    return ContentItem(kind="wiki", id=item_id, display_key=name, title=name, body=content)


class RecordingSleep:
    """Stand-in for time.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def throttle(recording_sleep: RecordingSleep) -> Throttle:
    return Throttle(min_interval=1.0, sleep=recording_sleep)


@pytest.fixture
def restore_root_logger() -> Generator[logging.Logger]:
    """Save the root logger handlers and level, and restore them after the test."""
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    try:
        yield root_logger
    finally:
        for handler in root_logger.handlers:
            handler.close()
        root_logger.handlers = original_handlers
        root_logger.setLevel(original_level)
