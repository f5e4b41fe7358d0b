"""Markdown ATX heading extraction and removal."""

from __future__ import annotations

import re

from harvest.core.schema import Heading

# The trailing newline is part of the match so removal drops the whole line.
HEADING_RE = re.compile(r"^(?P<level>#+) +(?P<text>.*)$\n?", re.MULTILINE)


def extract_headings(text: str, pattern: re.Pattern[str] = HEADING_RE) -> list[Heading]:
    """Return headings in document order; blank headings are skipped.

    ``order`` is the index of the match among all heading lines, blank ones
    included, so it stays stable when a heading is filtered out.
    """

    headings: list[Heading] = []
    for order, match in enumerate(pattern.finditer(text)):
        heading_text = match.group("text")
        if not heading_text.strip():
            continue
        level = min(len(match.group("level")), 6)
        headings.append(Heading(text=heading_text, level=level, order=order))
    return headings


def remove_headings(text: str, pattern: re.Pattern[str] = HEADING_RE) -> str:
    return pattern.sub("", text)


def is_heading(text: str) -> bool:
    return HEADING_RE.search(text) is not None
