"""Render chapter trees as XML-like markup or JSON.

Both renderers are pure functions of an already validated tree. The XML is
assembled as text rather than through ``xml.etree`` because sentence text
carries entity tags from ``wrap_labels`` that must stay as markup.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable
from xml.sax.saxutils import escape, quoteattr

from harvest.core.schema import ENTITY_LABELS
from harvest.core.tree_schema import ChapterTree, TreeMultiSentence

from .tree import generate_tree

INDENT = "  "

# Entity tags produced by ``wrap_labels`` pass through unescaped.
ENTITY_TAG_RE = re.compile(
    r"</?(?:%s)(?: ID=\"[^\"<>&]*\")?>" % "|".join(ENTITY_LABELS)
)


def identity(value: str) -> str:
    return value


def to_snake_upper(key: str) -> str:
    """``verseNumber`` -> ``VERSE_NUMBER``."""

    return re.sub(r"([a-z])([A-Z])", r"\1_\2", key).upper()


def escape_text(value: str) -> str:
    """Escape XML text while keeping entity tags as markup."""

    parts: list[str] = []
    last = 0
    for match in ENTITY_TAG_RE.finditer(value):
        parts.append(escape(value[last : match.start()]))
        parts.append(match.group(0))
        last = match.end()
    parts.append(escape(value[last:]))
    return "".join(parts)


def _attrs(attributes: dict[str, Any]) -> str:
    rendered = []
    for key, value in attributes.items():
        if isinstance(value, bool):
            value = "true" if value else "false"
        rendered.append(f" {key}={quoteattr(str(value))}")
    return "".join(rendered)


def _leaf(level: int, tag: str, value: Any, attributes: dict[str, Any] | None = None) -> str:
    if isinstance(value, bool):
        value = "true" if value else "false"
    text = escape_text("" if value is None else str(value))
    return f"{INDENT * level}<{tag}{_attrs(attributes or {})}>{text}</{tag}>"


def _node(level: int, tag: str, children: Iterable[str], attributes: dict[str, Any] | None = None) -> str:
    children = list(children)
    opening = f"{INDENT * level}<{tag}{_attrs(attributes or {})}>"
    closing = f"</{tag}>"
    if not children:
        return opening + "\n" + INDENT * level + closing
    return "\n".join([opening, *children, INDENT * level + closing])


def _meta(tree: ChapterTree, level: int) -> str:
    meta = tree.file.meta
    tags = [
        _node(
            level + 2,
            "TAG",
            [
                _leaf(level + 3, "CATEGORY", tag.category),
                _leaf(level + 3, "VIETNAMESE", tag.vietnamese),
            ],
        )
        for tag in meta.tags
    ]
    return _node(
        level,
        "meta",
        [
            _leaf(level + 1, "DOCUMENT_ID", meta.document_id),
            _leaf(level + 1, "DOCUMENT_NUMBER", meta.document_number),
            _node(
                level + 1,
                "GENRE",
                [
                    _leaf(level + 2, "CODE", meta.genre.code),
                    _leaf(level + 2, "CATEGORY", meta.genre.category),
                    _leaf(level + 2, "VIETNAMESE", meta.genre.vietnamese),
                ],
            ),
            _node(level + 1, "TAGS", tags),
            _leaf(level + 1, "TITLE", meta.title),
            _leaf(level + 1, "VOLUME", meta.volume),
            _leaf(level + 1, "AUTHOR", meta.author),
            _leaf(level + 1, "SOURCE_TYPE", meta.source_type),
            _leaf(level + 1, "SOURCE_URL", meta.source_url),
            _leaf(level + 1, "SOURCE", meta.source),
            _leaf(level + 1, "HAS_CHAPTERS", meta.has_chapters),
            _leaf(level + 1, "PERIOD", meta.period),
            _leaf(level + 1, "PUBLISHED_TIME", meta.published_time),
            _leaf(level + 1, "LANGUAGE", meta.language),
            _leaf(level + 1, "NOTE", meta.note),
        ],
    )


def _sentence(sentence: Any, level: int, transform_string: Callable[[str], str]) -> str:
    attributes: dict[str, Any] = {"ID": sentence.id, "TYPE": sentence.type}
    for key, value in (sentence.extra_attributes or {}).items():
        attributes[to_snake_upper(key)] = value
    if isinstance(sentence, TreeMultiSentence):
        variants = [
            _leaf(level + 1, variant.language_code, transform_string(variant.text))
            for variant in sentence.array
        ]
        return _node(level, "STC", variants, attributes)
    return _leaf(level, "STC", transform_string(sentence.text), attributes)


def to_xml(tree: ChapterTree, transform_string: Callable[[str], str] = identity) -> str:
    """Render ``tree`` as indented XML-like markup.

    Element and attribute names are upper-cased SNAKE_CASE; sentence
    ``extraAttributes`` become ``STC`` attributes. Text is escaped except
    for entity tags already spliced in by annotation wrapping.
    """

    sect = tree.sect
    pages = [
        _node(
            3,
            "PAGE",
            [_sentence(sentence, 4, transform_string) for sentence in page.sentences],
            {"ID": page.id, "NUMBER": page.number},
        )
        for page in sect.pages
    ]
    footnotes = _node(
        3,
        "FOOTNOTES",
        [
            _leaf(
                4,
                "FOOTNOTE",
                note.text,
                {
                    "SENTENCE_ID": note.sentence_id,
                    "LABEL": note.label,
                    "POSITION": note.position,
                    "ORDER": note.order,
                },
            )
            for note in sect.footnotes or []
        ],
    )
    headings = _node(
        3,
        "HEADINGS",
        [
            _leaf(
                4,
                "HEADING",
                heading.text,
                {"SENTENCE_ID": heading.sentence_id, "LEVEL": heading.level, "ORDER": heading.order},
            )
            for heading in sect.headings or []
        ],
    )
    sections = [*pages, footnotes, headings]
    if sect.annotations:
        sections.append(
            _node(
                3,
                "ANNOTATIONS",
                [
                    _leaf(
                        4,
                        "ANNOTATION",
                        item.text,
                        {
                            "SENTENCE_ID": item.sentence_id,
                            "LANGUAGE_CODE": item.language_code or "",
                            "START": item.start,
                            "END": item.end,
                            "LABELS": " ".join(item.labels),
                        },
                    )
                    for item in sect.annotations
                ],
            )
        )

    file_node = _node(
        1,
        "FILE",
        [
            _meta(tree, 2),
            _node(2, "SECT", sections, {"ID": sect.id, "NAME": sect.name, "NUMBER": sect.number}),
        ],
        {"ID": tree.file.id, "NUMBER": tree.file.number},
    )
    return _node(0, "root", [file_node])


def to_json(tree: ChapterTree) -> str:
    return json.dumps(tree.dump(), ensure_ascii=False, indent=2)


@dataclass(frozen=True)
class TreeFormat:
    """An output extension and the function producing its file content."""

    extension: str
    generate: Callable[..., str]


def generate_xml(chapter_params, metadata, pages, annotations=None) -> str:
    return to_xml(
        generate_tree(chapter_params, metadata, pages, annotations, wrap_annotations=True)
    )


def generate_json(chapter_params, metadata, pages, annotations=None) -> str:
    return to_json(generate_tree(chapter_params, metadata, pages, annotations))


DEFAULT_TREE_FORMATS: tuple[TreeFormat, ...] = (
    TreeFormat("xml", generate_xml),
    TreeFormat("json", generate_json),
)
