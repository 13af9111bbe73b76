"""Data models exchanged between the Backlog client, the header normalizer and the migrator.

The models are deliberately small: only the fields needed to locate an item,
rewrite its body and report on it are carried around.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

ItemKind = Literal["issue", "wiki"]
RunMode = Literal["dry_run", "execute"]

MARKDOWN_FORMATTING_RULE = "markdown"


@dataclass(frozen=True)
class MigrationConfig:
    """Settings for one migration run, collected once before any API call."""

    host: str  # Backlog space host, e.g. "example.backlog.com"
    api_key: str
    project_code: str
    dry_run: bool = True

    @property
    def mode(self) -> RunMode:
        return "dry_run" if self.dry_run else "execute"


@dataclass(frozen=True)
class Project:
    """A Backlog project as far as the migration is concerned."""

    id: int
    key: str
    name: str
    text_formatting_rule: str

    @property
    def markdown_enabled(self) -> bool:
        return self.text_formatting_rule == MARKDOWN_FORMATTING_RULE


@dataclass(frozen=True)
class ContentItem:
    """An issue or a wiki page.

    Listing calls return summaries whose body may be empty; the migrator always
    fetches the full record before normalizing it.
    """

    kind: ItemKind
    id: int
    display_key: str  # Issue key (e.g. "PROJ-12") or wiki page name
    body: str = ""  # Issue description or wiki content
    title: str = ""  # Issue summary; same as display_key for wiki pages


@dataclass(frozen=True)
class NormalizationResult:
    """Outcome of normalizing the headers of one body."""

    content: str
    change_count: int = 0

    @property
    def changed(self) -> bool:
        return self.change_count > 0


@dataclass(frozen=True)
class ItemChange:
    """An item whose body needed (dry-run) or received (execute) header fixes."""

    item: ContentItem
    change_count: int


@dataclass(frozen=True)
class ItemOutcome:
    """Result of processing a single item within a batch."""

    item: ContentItem
    status: Literal["unchanged", "updated", "failed"]
    change_count: int = 0
    error: str | None = None

    @classmethod
    def unchanged(cls, item: ContentItem) -> ItemOutcome:
        return cls(item=item, status="unchanged")

    @classmethod
    def updated(cls, item: ContentItem, change_count: int) -> ItemOutcome:
        return cls(item=item, status="updated", change_count=change_count)

    @classmethod
    def failed(cls, item: ContentItem, error: str) -> ItemOutcome:
        return cls(item=item, status="failed", error=error)


@dataclass
class ProcessingStats:
    """Counters for one batch (one item kind, one run)."""

    total: int = 0
    updated: int = 0
    errors: int = 0
    changes: list[ItemChange] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)  # (display_key, error message)

    def record(self, outcome: ItemOutcome) -> None:
        """Fold a single item outcome into the counters."""
        if outcome.status == "updated":
            self.updated += 1
            self.changes.append(ItemChange(item=outcome.item, change_count=outcome.change_count))
        elif outcome.status == "failed":
            self.errors += 1
            self.failures.append((outcome.item.display_key, outcome.error or ""))


@dataclass
class MigrationResult:
    """Result of a migration run over all requested item kinds of a project."""

    project: Project
    dry_run: bool
    issues: ProcessingStats = field(default_factory=ProcessingStats)
    wikis: ProcessingStats = field(default_factory=ProcessingStats)

    @property
    def total(self) -> int:
        return self.issues.total + self.wikis.total

    @property
    def updated(self) -> int:
        return self.issues.updated + self.wikis.updated

    @property
    def errors(self) -> int:
        return self.issues.errors + self.wikis.errors
