"""Cleanup helpers for Markdown produced from scraped HTML."""

from __future__ import annotations

import re
from functools import reduce
from typing import Callable, Iterable

from .headings import is_heading

MD_IMAGE_RE = re.compile(r"!\[(?P<alt>[^\]]*)\]\((?P<link>[^)]*)\)")
MD_LINK_RE = re.compile(r"\[(?P<alt>[^\]]*)\]\((?P<link>[^)]*)\)")
MD_HR_RE = re.compile(r"^\n*[-*_\s]{1,}\n*$", re.MULTILINE)
PARAGRAPH_DELIMITER_RE = re.compile(r"\n{2,}")
BULLET_ESCAPE_RE = re.compile(r"^ *\d+\\\.\s", re.MULTILINE)

_EMPHASIS_RES = tuple(
    re.compile(rf"([*_]{{{n}}})( *)(?P<text>[^*_\n]+)([*_]{{{n}}})") for n in (3, 2, 1)
)

_SPACE_TRANSLATION = str.maketrans(
    {
        "\u00a0": " ",
        **{chr(code): " " for code in range(0x2000, 0x200B)},
        "\u200b": None,
        "\u200c": None,
        "\u200d": None,
        "\u202f": " ",
        "\u205f": " ",
        "\u3000": " ",
    }
)


def remove_images(text: str, *, keep_alt: bool = False, use_link_as_alt: bool = True) -> str:
    def _replace(match: re.Match[str]) -> str:
        if not keep_alt:
            return ""
        if match.group("alt"):
            return match.group("alt")
        return match.group("link") if use_link_as_alt else ""

    return MD_IMAGE_RE.sub(_replace, text)


def remove_links(text: str, *, use_link_as_alt: bool = True) -> str:
    def _replace(match: re.Match[str]) -> str:
        if match.group("alt"):
            return match.group("alt")
        return match.group("link") if use_link_as_alt else ""

    return MD_LINK_RE.sub(_replace, text)


def remove_horizontal_rules(text: str) -> str:
    return MD_HR_RE.sub("", text)


def remove_bullet_escape(text: str) -> str:
    """Turn ``1\\. item`` back into ``1. item``."""

    return BULLET_ESCAPE_RE.sub(lambda m: m.group(0).replace("\\", "", 1), text)


def normalize_emphasis(text: str) -> str:
    """Move padding spaces outside emphasis markers: ``** bold **`` -> ``**bold** ``.

    Runs from the most nested marker (three) to the least.
    """

    def _replace(match: re.Match[str]) -> str:
        left, left_pad, body, right = match.group(1), match.group(2), match.group("text"), match.group(4)
        stripped = body.rstrip()
        right_pad = " " * (len(body) - len(stripped))
        return f"{left_pad}{left}{stripped}{right}{right_pad}"

    for pattern in _EMPHASIS_RES:
        text = pattern.sub(_replace, text)
    return text


def normalize_whitespace(text: str) -> str:
    """Map exotic Unicode spaces to a plain space and drop zero-width characters."""

    return text.translate(_SPACE_TRANSLATION)


def split_paragraphs(text: str, *, heading_as_paragraph: bool = True) -> list[str]:
    """Split on blank lines.

    With ``heading_as_paragraph=False`` heading blocks are glued to the
    following paragraph instead of standing alone; trailing headings with no
    paragraph after them are dropped.
    """

    paragraphs = [p.strip() for p in PARAGRAPH_DELIMITER_RE.split(text)]
    paragraphs = [p for p in paragraphs if p]
    if heading_as_paragraph:
        return paragraphs

    merged: list[str] = []
    pending: list[str] = []
    for paragraph in paragraphs:
        if is_heading(paragraph):
            pending.append(paragraph)
            continue
        merged.append("\n".join(["\n".join(pending), paragraph]).strip())
        pending = []
    return merged


def cleanup(text: str, steps: Iterable[Callable[[str], str]]) -> str:
    """Apply ``steps`` left to right."""

    return reduce(lambda acc, step: step(acc), steps, text)


DEFAULT_CLEANUP: tuple[Callable[[str], str], ...] = (
    normalize_whitespace,
    remove_images,
    remove_links,
    remove_horizontal_rules,
    remove_bullet_escape,
    normalize_emphasis,
)
