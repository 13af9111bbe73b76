"""
Custom exception classes for the Backlog GFM header migration tool.
"""

from __future__ import annotations


class MigrationError(Exception):
    """Base exception for migration errors."""


class ConfigError(MigrationError):
    """Raised when the run configuration is invalid or incomplete."""


class ProjectFormatError(MigrationError):
    """Raised when the project does not use Markdown text formatting."""


class BacklogApiError(MigrationError):
    """Raised when a Backlog API call fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code: int | None = status_code
