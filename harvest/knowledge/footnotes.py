"""Footnote marker extraction and re-injection.

Positions are character offsets into the marker-free text, so a marker list
extracted from a sentence can be injected back into the cleaned sentence.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Protocol

import structlog

logger = structlog.get_logger(__name__)

# Optionally backslash-escaped ``[label]``, as produced by HTML to Markdown
# converters (``\[1]``).
FOOTNOTE_RE = re.compile(r"\\?\\?\[(?P<label>[a-zA-Z0-9*]+)\]")


@dataclass(frozen=True)
class FootnotePosition:
    label: str
    position: int


class _Positioned(Protocol):
    label: str
    position: int


def format_footnote_label(label: str) -> str:
    return f"[{label}]"


def select_footnote_label(match: re.Match[str]) -> str:
    try:
        return match.group("label") or match.group(0)
    except IndexError:
        return match.group(0)


def extract_footnotes(
    text: str,
    pattern: re.Pattern[str] = FOOTNOTE_RE,
    label_selector: Callable[[re.Match[str]], str] = select_footnote_label,
) -> list[FootnotePosition]:
    """Return every marker with the offset it has once markers are removed."""

    result: list[FootnotePosition] = []
    removed = 0
    for match in pattern.finditer(text):
        result.append(
            FootnotePosition(label=label_selector(match), position=match.start() - removed)
        )
        removed += len(match.group(0))
    return result


def inject_footnotes(
    text: str,
    footnotes: Iterable[_Positioned],
    format_label: Callable[[str], str] = format_footnote_label,
) -> str:
    """Insert formatted markers at their positions, rightmost first.

    Positions beyond the end of the text are appended.
    """

    ordered = sorted(footnotes, key=lambda note: note.position, reverse=True)
    result = text
    for note in ordered:
        label = format_label(note.label)
        if note.position > len(result):
            result += label
        else:
            result = result[: note.position] + label + result[note.position :]
    return result


def remove_footnotes(text: str, pattern: re.Pattern[str] = FOOTNOTE_RE) -> str:
    return pattern.sub("", text)


def resolve_footnotes(
    positions: Iterable[FootnotePosition],
    texts: Mapping[str, str],
    *,
    sentence_id: str | None = None,
) -> list[dict[str, object]]:
    """Pair extracted marker positions with footnote bodies by label.

    Markers whose label has no body are dropped with a warning. The returned
    dicts use camelCase keys so they validate as sentence footnotes.
    """

    resolved: list[dict[str, object]] = []
    for item in positions:
        body = texts.get(item.label)
        if body is None:
            logger.warning(
                "footnote label without text",
                label=item.label,
                position=item.position,
                sentence_id=sentence_id,
            )
            continue
        footnote: dict[str, object] = {
            "label": item.label,
            "text": body,
            "position": item.position,
        }
        if sentence_id is not None:
            footnote["sentenceId"] = sentence_id
        resolved.append(footnote)
    return resolved
