"""Protocol defining the contract between the migrator and the Backlog API.

The migration is split into three components:

1. BacklogApi: Reads and writes issues and wiki pages of a Backlog space
2. markdown_headers: Pure text transformation of one body
3. HeaderMigrator: Drives the batches, tracks statistics and per-item failures

Keeping the API behind a protocol lets the migrator be exercised with an
in-memory fake, and keeps pagination and HTTP details out of the batch loop.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import ContentItem, Project


class BacklogApi(Protocol):
    """Protocol for the Backlog operations the migrator depends on.

    Every method may raise BacklogApiError on transport, authentication or
    validation failures. The migrator treats all of them as per-item errors,
    except for get_project() which is fatal to the whole run.
    """

    def get_project(self, project_key: str) -> Project:
        """Return the project, validating that it uses Markdown formatting.

        Raises:
            ProjectFormatError: If the project's text formatting rule is not Markdown
        """
        ...

    def list_issues(self, project_id: int) -> Sequence[ContentItem]:
        """Return summaries of all issues in the project.

        Implementations page through the remote collection and return every
        item, regardless of the API's page size limit.
        """
        ...

    def get_issue(self, issue_id: int) -> ContentItem:
        """Return the full issue, including its description."""
        ...

    def update_issue(self, issue_id: int, description: str) -> None:
        """Replace the issue description."""
        ...

    def list_wikis(self, project_id: int) -> Sequence[ContentItem]:
        """Return summaries of all wiki pages in the project."""
        ...

    def get_wiki(self, wiki_id: int) -> ContentItem:
        """Return the full wiki page, including its content."""
        ...

    def update_wiki(self, wiki_id: int, content: str) -> None:
        """Replace the wiki page content."""
        ...
