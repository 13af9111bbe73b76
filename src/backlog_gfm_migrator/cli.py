"""
Command-line interface for the Backlog GFM header migration tool.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from typing import TYPE_CHECKING

from tqdm import tqdm

from . import backlog_utils as blu
from .exceptions import ConfigError
from .models import MigrationConfig
from .orchestrator import HeaderMigrator
from .throttle import DEFAULT_MIN_INTERVAL_SECONDS, Throttle
from .utils import DEFAULT_LOG_FILE, parse_yes_no, setup_logging

if TYPE_CHECKING:
    from collections.abc import Callable

    from .models import ItemKind, ItemOutcome, MigrationResult, ProcessingStats

logger: logging.Logger = logging.getLogger(__name__)

_RULE_WIDTH = 80


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Fix Markdown headers (#Title -> # Title) in Backlog issues and wikis for GFM compatibility"
    )

    _ = parser.add_argument("--host", help="Backlog space host (e.g., yourspace.backlog.com)")
    _ = parser.add_argument("--project", "-p", help="Backlog project key")
    _ = parser.add_argument(
        "--api-key-pass-path", help="Path for the Backlog API key in pass utility (default: env var BACKLOG_API_KEY)"
    )

    mode = parser.add_mutually_exclusive_group()
    _ = mode.add_argument(
        "--dry-run", dest="dry_run", action="store_true", default=None, help="Only list items needing header fixes"
    )
    _ = mode.add_argument("--execute", dest="dry_run", action="store_false", help="Update items in Backlog")

    _ = parser.add_argument(
        "--delay",
        type=float,
        default=DEFAULT_MIN_INTERVAL_SECONDS,
        help=f"Seconds to wait after each update (default: {DEFAULT_MIN_INTERVAL_SECONDS})",
    )
    _ = parser.add_argument("--page-size", type=int, default=100, help="Issues fetched per request (max 100)")
    _ = parser.add_argument("--skip-issues", action="store_true", help="Do not process issues")
    _ = parser.add_argument("--skip-wikis", action="store_true", help="Do not process wiki pages")
    _ = parser.add_argument("--log-file", default=DEFAULT_LOG_FILE, help=f"Log file (default: {DEFAULT_LOG_FILE})")
    _ = parser.add_argument(
        "--verbose", "-v", action="count", default=0, help="Increase console verbosity (-v: info, -vv: debug)"
    )

    return parser.parse_args(argv)


def _ask(prompt: Callable[[str], str], message: str, validate: Callable[[str], str | None]) -> str:
    """Prompt until validate() accepts the answer (returns None)."""
    while True:
        answer = prompt(message).strip()
        error = validate(answer)
        if error is None:
            return answer
        print(error)


def _require(what: str) -> Callable[[str], str | None]:
    return lambda answer: None if answer else f"{what} is required"


def _validate_host(answer: str) -> str | None:
    if not answer:
        return "Backlog space is required"
    if not blu.is_valid_host(answer):
        return "Please enter a valid Backlog space (e.g., yourspace.backlog.com)"
    return None


def _validate_yes_no(answer: str) -> str | None:
    try:
        _ = parse_yes_no(answer, default=True)
    except ValueError:
        return "Please enter y/yes/t/true for dry-run mode, or n/no/f/false for execution mode"
    return None


def collect_config(
    args: argparse.Namespace,
    *,
    prompt: Callable[[str], str] = input,
    secret_prompt: Callable[[str], str] = getpass.getpass,
) -> MigrationConfig:
    """Build the run configuration from arguments, asking interactively for anything missing."""
    host: str | None = args.host
    if host is None:
        host = _ask(prompt, "Enter your Backlog space (e.g., yourspace.backlog.com): ", _validate_host)
    elif _validate_host(host.strip()) is not None:
        msg = f"Invalid Backlog space: {host}"
        raise ConfigError(msg)

    api_key = blu.get_api_key(args.api_key_pass_path)
    if not api_key:
        api_key = _ask(secret_prompt, "Enter your Backlog API key: ", _require("API key"))

    project_code: str | None = args.project
    if project_code is None:
        project_code = _ask(prompt, "Enter the project code: ", _require("Project code"))
    elif not project_code.strip():
        msg = "Project code is required"
        raise ConfigError(msg)

    dry_run: bool | None = args.dry_run
    if dry_run is None:
        answer = _ask(
            prompt, "Run in dry-run mode? (Preview changes without updating) [Y/n]: ", _validate_yes_no
        )
        dry_run = parse_yes_no(answer, default=True)

    return MigrationConfig(
        host=host.strip(),
        api_key=api_key.strip(),
        project_code=project_code.strip().upper(),
        dry_run=dry_run,
    )


class BatchProgress:
    """One tqdm progress bar per batch, fed by the migrator's callbacks."""

    def __init__(self, *, dry_run: bool) -> None:
        self._verb: str = "Analyzing" if dry_run else "Processing"
        self._bar: tqdm[None] | None = None

    def start(self, kind: ItemKind, total: int) -> None:
        self.close()
        self._bar = tqdm(total=total, desc=f"{self._verb} {kind}s", unit=kind)

    def advance(self, outcome: ItemOutcome) -> None:
        if self._bar is not None:
            self._bar.update(1)
            if outcome.status == "failed":
                self._bar.set_postfix_str(f"failed: {outcome.item.display_key}")

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


def _print_dry_run_listing(label: str, stats: ProcessingStats) -> None:
    if not stats.changes:
        print(f"\nNo {label} require header fixes!")
        return

    print(f"\n{label.capitalize()} requiring header fixes ({len(stats.changes)}):")
    print("-" * _RULE_WIDTH)
    for index, change in enumerate(stats.changes, start=1):
        item = change.item
        title = f"{item.display_key}: {item.title}" if item.kind == "issue" else item.display_key
        print(f"{index}. {title}")
        print(f"   {change.change_count} header(s) need fixing")


def _print_report(result: MigrationResult, kinds: list[ItemKind]) -> None:
    """Print the per-kind results and the final summary."""
    batches: list[tuple[str, ProcessingStats]] = []
    if "issue" in kinds:
        batches.append(("issues", result.issues))
    if "wiki" in kinds:
        batches.append(("wikis", result.wikis))

    if result.dry_run:
        for label, stats in batches:
            _print_dry_run_listing(label, stats)

        print("\nDRY-RUN SUMMARY")
        print("=" * 50)
        print(f"Total items analyzed: {result.total}")
        print(f"Items needing header fixes: {result.updated}")
        print(f"Analysis errors: {result.errors}")
        print('\nTo apply these changes, run again with --execute or answer "n" for dry-run mode.')
    else:
        for label, stats in batches:
            print(f"{label.capitalize()} processed: {stats.total}, Updated: {stats.updated}, Errors: {stats.errors}")

        print("\nMigration completed!")
        print(f"Summary: {result.updated} items updated, {result.errors} errors")

    for label, stats in batches:
        for display_key, error in stats.failures:
            print(f"  Failed {label[:-1]} {display_key}: {error}")


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_arguments(argv)

    verbosity: int = getattr(args, "verbose", 0)
    setup_logging(verbosity=verbosity, log_file=args.log_file)

    print("Backlog to GFM Markdown Migration Tool")
    print("=" * 38)

    kinds: list[ItemKind] = []
    if not args.skip_issues:
        kinds.append("issue")
    if not args.skip_wikis:
        kinds.append("wiki")

    try:
        config = collect_config(args)
        logger.info(f"Processing project: {config.project_code} (dry-run: {config.dry_run})")

        throttle = Throttle(min_interval=args.delay)
        client = blu.get_client(config.host, config.api_key, page_size=args.page_size, throttle=throttle)
        migrator = HeaderMigrator(client, throttle=throttle)

        print(f"\nValidating project {config.project_code}...")
        project = migrator.validate_project(config.project_code)
        print(f"Project validated: {project.name} ({project.key}) uses markdown formatting")
        if config.dry_run:
            print("DRY-RUN MODE: analyzing items that need header fixes, nothing will be updated")

        progress = BatchProgress(dry_run=config.dry_run)
        try:
            result = migrator.run_project(
                project,
                dry_run=config.dry_run,
                kinds=kinds,
                on_batch_start=progress.start,
                on_item=progress.advance,
            )
        finally:
            progress.close()
    except Exception as e:
        logger.exception("Migration failed")
        print(f"\nMigration failed: {e}")
        sys.exit(1)

    _print_report(result, kinds)
    print(f"\nCheck {args.log_file} for detailed logs")
    outcome = "need updates" if result.dry_run else "updated"
    logger.info(f"Final summary: {result.updated} items {outcome}, {result.errors} errors")
    sys.exit(0)
