"""
Backlog GFM Header Migration Tool

Rewrites Markdown headers in Backlog issue descriptions and wiki pages so
they follow GFM syntax (a space after the leading '#' marks).
"""

from __future__ import annotations

from .backlog_client import BacklogClient
from .cli import main
from .exceptions import BacklogApiError, ConfigError, MigrationError, ProjectFormatError
from .markdown_headers import needs_normalization, normalize
from .orchestrator import HeaderMigrator
from .utils import setup_logging

# Package version
__version__ = "0.1.0"

__all__ = [
    "BacklogApiError",
    "BacklogClient",
    "ConfigError",
    "HeaderMigrator",
    "MigrationError",
    "ProjectFormatError",
    "main",
    "needs_normalization",
    "normalize",
    "setup_logging",
]
