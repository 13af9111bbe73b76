"""
Utility functions for the Backlog GFM header migration tool.
"""

from __future__ import annotations

import logging
import re
import subprocess
from subprocess import CompletedProcess

DEFAULT_LOG_FILE = "migration.log"

_YES_ANSWERS = frozenset({"y", "yes", "t", "true"})
_NO_ANSWERS = frozenset({"n", "no", "f", "false"})


class PassError(Exception):
    """Base class for pass-related errors."""


class InvalidPassPathError(PassError):
    """Raised when the pass path does not exist in the password store."""


def setup_logging(*, verbosity: int = 0, log_file: str = DEFAULT_LOG_FILE) -> None:
    """Configure logging for the migration process.

    The log file always receives DEBUG records. The console shows warnings by
    default, INFO with -v and DEBUG with -vv.
    """
    if verbosity <= 0:
        console_level = logging.WARNING
    elif verbosity == 1:
        console_level = logging.INFO
    else:
        console_level = logging.DEBUG

    console_handler = logging.StreamHandler()
    console_handler.setLevel(console_level)
    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)

    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[console_handler, file_handler],
    )
    # Keep HTTP connection chatter out of the migration log
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def parse_yes_no(answer: str, *, default: bool) -> bool:
    """Parse a yes/no answer; an empty answer selects the default."""
    normalized = answer.strip().lower()
    if not normalized:
        return default
    if normalized in _YES_ANSWERS:
        return True
    if normalized in _NO_ANSWERS:
        return False
    msg = f"Expected y/yes/t/true or n/no/f/false, got: {answer!r}"
    raise ValueError(msg)


def _validate_pass_path(pass_path: str) -> None:
    """Validate the pass path format."""
    if not re.fullmatch(r"(?:[A-Za-z0-9_.-]+)(?:/[A-Za-z0-9_.-]+)*", pass_path):
        msg = f"Invalid pass path: {pass_path}"
        raise ValueError(msg)


def get_pass_value(pass_path: str) -> str:
    """Get value from pass utility at specified path."""
    _validate_pass_path(pass_path)

    try:
        result: CompletedProcess[str] = subprocess.run(  # noqa: S603
            ["pass", pass_path], capture_output=True, text=True, check=True
        )
    except FileNotFoundError as e:
        msg = "The pass utility is not installed"
        raise PassError(msg) from e
    except subprocess.CalledProcessError as e:
        if "not in the password store" in e.stderr.lower():
            msg = f"Pass path '{pass_path}' not found or invalid."
            raise InvalidPassPathError(msg) from e
        msg = (
            f"Failed to get value from pass at '{pass_path}'.\n"
            f"Error: {e.stderr.strip()}\n"
            f"Return code: {e.returncode}"
        )
        raise PassError(msg) from e

    return result.stdout.strip()
