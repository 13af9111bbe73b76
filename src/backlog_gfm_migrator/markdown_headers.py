"""Fix Markdown headers so they follow GFM syntax.

Backlog's Markdown renderer accepts ``#Title`` as a header, GFM does not: it
requires a space between the ``#`` marks and the header text. Only headers at
the very start of a line are touched, and GFM caps header levels at six, so a
run of seven or more ``#`` is left alone.
"""

from __future__ import annotations

import logging
import re

from .models import NormalizationResult

logger: logging.Logger = logging.getLogger(__name__)

# 1-6 leading '#' directly followed by something that is neither whitespace nor '#'
HEADER_WITHOUT_SPACE_RE: re.Pattern[str] = re.compile(r"^(#{1,6})([^\s#])", re.MULTILINE)


def normalize(content: str | None, *, context: str = "") -> NormalizationResult:
    """Insert a single space after the leading '#' run of every unspaced header.

    Args:
        content: Markdown text; may be empty or None
        context: Label used in log messages (e.g., "issue PROJ-1")

    Returns:
        NormalizationResult with the rewritten content and the number of rewritten lines
    """
    if not content:
        return NormalizationResult(content=content)  # type: ignore[arg-type]

    change_count = 0

    def _add_space(match: re.Match[str]) -> str:
        nonlocal change_count
        change_count += 1
        hashes, first_char = match.group(1), match.group(2)
        logger.debug(f'Fixed header in {context or "content"}: "{hashes}{first_char}" -> "{hashes} {first_char}"')
        return f"{hashes} {first_char}"

    new_content = HEADER_WITHOUT_SPACE_RE.sub(_add_space, content)

    if change_count:
        logger.info(f"Fixed {change_count} headers in {context or 'content'}")

    return NormalizationResult(content=new_content, change_count=change_count)


def needs_normalization(content: str | None) -> bool:
    """Check whether content contains headers without a space after the '#' marks."""
    if not content:
        return False
    return HEADER_WITHOUT_SPACE_RE.search(content) is not None
