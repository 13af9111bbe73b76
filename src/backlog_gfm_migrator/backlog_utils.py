from __future__ import annotations

import logging
import os
import re
from typing import Final

from . import utils
from .backlog_client import MAX_PAGE_SIZE, BacklogClient
from .throttle import Throttle

# Module-wide logger
logger: logging.Logger = logging.getLogger(__name__)

_API_KEY_ENV_VAR: Final[str] = "BACKLOG_API_KEY"
_DEFAULT_API_KEY_PASS_PATH: Final[str] = "backlog/api_key"

# Bare hostname such as "yourspace.backlog.com", no scheme or path
_HOST_RE: Final[re.Pattern[str]] = re.compile(r"[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")


def is_valid_host(host: str) -> bool:
    """Check that host looks like a Backlog space hostname."""
    return _HOST_RE.fullmatch(host.strip()) is not None


def get_api_key(pass_path: str | None = None) -> str | None:
    """Get Backlog API key from pass path, env var BACKLOG_API_KEY, or default pass location."""
    # Try pass path first
    if pass_path:
        return utils.get_pass_value(pass_path)

    # Try environment variable
    api_key: str | None = os.environ.get(_API_KEY_ENV_VAR)
    if api_key:
        return api_key

    # Try default pass path
    try:
        return utils.get_pass_value(_DEFAULT_API_KEY_PASS_PATH)
    except utils.PassError:
        logger.debug("No Backlog API key found in environment or pass store")
        return None


def get_client(
    host: str,
    api_key: str,
    *,
    page_size: int = MAX_PAGE_SIZE,
    throttle: Throttle | None = None,
) -> BacklogClient:
    """Get a Backlog client for the given space."""
    return BacklogClient(host.strip(), api_key, page_size=page_size, throttle=throttle)
