"""Migration orchestrator that applies header fixes to a Backlog project.

The HeaderMigrator is the central coordinator of a run. It:
1. Validates that the project uses Markdown formatting
2. Runs one batch per item kind (issues, then wiki pages)
3. Tracks statistics and per-item failures without aborting a batch

Batch Flow
----------
For one item kind, a batch proceeds as follows:

    list summaries ──► for each summary (sequentially):
                           a. fetch the full record
                           b. normalize the headers of its body
                           c. unchanged: next item
                           d. dry-run: record as "needs update"
                           e. execute: persist, then pause (throttle)

Dry-run and execute share every step up to the persist call, so a dry-run
report is a faithful preview of what execute would change.

Error Handling
--------------
- Project lookup / format validation: fatal, raised to the caller
- Listing failure: fatal for the run, raised to the caller
- Any failure while fetching, normalizing or persisting one item: counted,
  logged, batch continues

There are no retries and no rollback. The header transform is idempotent, so
re-running a migration only touches the items still needing fixes, including
those that failed previously.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from functools import partial
from typing import TYPE_CHECKING, NamedTuple

from .markdown_headers import normalize
from .models import ContentItem, ItemOutcome, MigrationResult, ProcessingStats
from .throttle import Throttle

if TYPE_CHECKING:
    from .models import ItemKind, Project, RunMode
    from .protocols import BacklogApi

logger = logging.getLogger(__name__)


class _KindOperations(NamedTuple):
    """API operations for one item kind."""

    list_items: Callable[[int], Sequence[ContentItem]]
    get_item: Callable[[int], ContentItem]
    update_item: Callable[[int, str], None]


class HeaderMigrator:
    """Applies GFM header fixes to all issues and wiki pages of a project.

    Usage:
        client = BacklogClient(host, api_key)
        migrator = HeaderMigrator(client)
        result = migrator.migrate("PROJ", dry_run=True)

    The migrator keeps no state between batches; everything is returned in
    ProcessingStats / MigrationResult.
    """

    _client: BacklogApi
    _throttle: Throttle

    def __init__(self, client: BacklogApi, *, throttle: Throttle | None = None) -> None:
        """Initialize the migrator.

        Args:
            client: Backlog API implementation
            throttle: Pause applied after each successful update (default: 1 second)
        """
        self._client = client
        self._throttle = throttle or Throttle()

    def _operations(self, kind: ItemKind) -> _KindOperations:
        if kind == "issue":
            return _KindOperations(self._client.list_issues, self._client.get_issue, self._client.update_issue)
        if kind == "wiki":
            return _KindOperations(self._client.list_wikis, self._client.get_wiki, self._client.update_wiki)
        msg = f"Unknown item kind: {kind}"
        raise ValueError(msg)

    def validate_project(self, project_key: str) -> Project:
        """Fetch the project, failing unless it uses Markdown formatting.

        Raises:
            ProjectFormatError: If the project does not use Markdown formatting
            BacklogApiError: If the project cannot be retrieved
        """
        return self._client.get_project(project_key)

    def migrate(
        self,
        project_key: str,
        *,
        dry_run: bool = True,
        kinds: Iterable[ItemKind] = ("issue", "wiki"),
    ) -> MigrationResult:
        """Validate the project and run one batch per item kind.

        Args:
            project_key: Backlog project key (e.g., "PROJ")
            dry_run: Only report what would change when True
            kinds: Item kinds to process, in order

        Returns:
            MigrationResult with per-kind statistics

        Raises:
            ProjectFormatError: If the project does not use Markdown formatting
            BacklogApiError: If the project or an item collection cannot be retrieved
        """
        project = self.validate_project(project_key)
        return self.run_project(project, dry_run=dry_run, kinds=kinds)

    def run_project(
        self,
        project: Project,
        *,
        dry_run: bool = True,
        kinds: Iterable[ItemKind] = ("issue", "wiki"),
        on_batch_start: Callable[[ItemKind, int], None] | None = None,
        on_item: Callable[[ItemOutcome], None] | None = None,
    ) -> MigrationResult:
        """Run one batch per item kind on an already validated project.

        Args:
            project: Project returned by validate_project()
            dry_run: Only report what would change when True
            kinds: Item kinds to process, in order
            on_batch_start: Called with the kind and item count once a collection is listed
            on_item: Called with each item's outcome
        """
        mode: RunMode = "dry_run" if dry_run else "execute"
        result = MigrationResult(project=project, dry_run=dry_run)

        for kind in kinds:
            logger.info(f"Starting {kind} {'analysis' if dry_run else 'processing'}...")
            on_total = partial(on_batch_start, kind) if on_batch_start is not None else None
            stats = self.run_batch(project.id, kind, mode, on_total=on_total, on_item=on_item)
            logger.info(f"{kind.capitalize()}s: total {stats.total}, updated {stats.updated}, errors {stats.errors}")
            if kind == "issue":
                result.issues = stats
            else:
                result.wikis = stats

        return result

    def run_batch(
        self,
        project_id: int,
        kind: ItemKind,
        mode: RunMode,
        *,
        on_total: Callable[[int], None] | None = None,
        on_item: Callable[[ItemOutcome], None] | None = None,
    ) -> ProcessingStats:
        """Normalize the headers of every item of one kind in a project.

        Args:
            project_id: Numeric Backlog project ID
            kind: "issue" or "wiki"
            mode: "dry_run" to only report, "execute" to persist changes
            on_total: Optional callback invoked with the number of listed items
            on_item: Optional callback invoked with each item's outcome

        Returns:
            ProcessingStats for this batch
        """
        operations = self._operations(kind)
        summaries = operations.list_items(project_id)
        stats = ProcessingStats(total=len(summaries))
        if on_total is not None:
            on_total(stats.total)

        if not summaries:
            logger.info(f"No {kind}s found in project {project_id}")
            return stats

        for summary in summaries:
            outcome = self._process_item(summary, operations, mode)
            stats.record(outcome)
            if on_item is not None:
                on_item(outcome)

        return stats

    def _process_item(self, summary: ContentItem, operations: _KindOperations, mode: RunMode) -> ItemOutcome:
        """Fetch, normalize and (in execute mode) persist a single item."""
        context = f"{summary.kind} {summary.display_key}"
        try:
            item = operations.get_item(summary.id)
            result = normalize(item.body, context=context)
            if not result.changed:
                return ItemOutcome.unchanged(item)

            if mode == "execute":
                operations.update_item(item.id, result.content)
                self._throttle.pause()
            else:
                logger.info(f"{context} needs {result.change_count} header fix(es)")
        except Exception as e:  # noqa: BLE001 - one item's failure must not end the batch
            verb = "analyzing" if mode == "dry_run" else "processing"
            logger.error(f"Error {verb} {context}: {e}")  # noqa: TRY400
            return ItemOutcome.failed(summary, str(e) or type(e).__name__)

        return ItemOutcome.updated(item, result.change_count)
