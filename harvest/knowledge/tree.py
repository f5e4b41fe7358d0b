"""Assemble validated chapter trees from metadata, pages and annotations."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Iterable, Sequence

import structlog

from harvest.core.ids import get_chapter_id, get_document_id
from harvest.core.schema import (
    ChapterParams,
    Metadata,
    MultiLanguageSentence,
    Page,
    SentenceEntityAnnotation,
    SentenceHeading,
    TreeFootnote,
    parse_annotations,
    parse_chapter_params,
    parse_metadata,
    parse_pages,
)
from harvest.core.tree_schema import ChapterTree, parse_chapter_tree
from harvest.errors import ValidationError

from .annotations import annotations_for, wrap_labels

logger = structlog.get_logger(__name__)

DATE_FORMATS = ("%d/%m/%Y", "%Y")


def default_parse_date(value: str) -> datetime:
    """Parse ``dd/mm/YYYY`` or ``YYYY``; raise ``ValueError`` otherwise."""

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"Invalid date format: {value}")


def collect_footnotes(pages: Iterable[Page]) -> list[TreeFootnote]:
    """Lift sentence footnotes into document order with a fresh ``order``."""

    collected = []
    for page in pages:
        for sentence in page.sentences:
            if isinstance(sentence, MultiLanguageSentence):
                for variant in sentence.array:
                    collected.extend(variant.footnotes or [])
            else:
                collected.extend(sentence.footnotes or [])
    return [
        TreeFootnote(**note.model_dump(), order=order)
        for order, note in enumerate(collected)
    ]


def collect_headings(pages: Iterable[Page]) -> list[SentenceHeading]:
    return [
        heading
        for page in pages
        for sentence in page.sentences
        for heading in sentence.headings or []
    ]


def _sentence_payload(
    sentence: Any,
    annotations: Sequence[SentenceEntityAnnotation] | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {"id": sentence.id, "type": sentence.type}
    if sentence.extra_attributes is not None:
        payload["extraAttributes"] = dict(sentence.extra_attributes)

    if isinstance(sentence, MultiLanguageSentence):
        variants = []
        for variant in sentence.array:
            text = variant.text
            if annotations is not None:
                text = wrap_labels(
                    text, annotations_for(annotations, sentence.id, variant.language_code)
                )
            variants.append({"languageCode": variant.language_code, "text": text})
        payload["array"] = variants
        return payload

    text = sentence.text
    if annotations is not None:
        text = wrap_labels(text, annotations_for(annotations, sentence.id))
    payload["text"] = text
    return payload


def _checked(result: Any) -> Any:
    if not result.success:
        raise result.error
    return result.data


def generate_tree(
    chapter_params: ChapterParams | dict[str, Any],
    metadata: Metadata | dict[str, Any],
    pages: Sequence[Page | dict[str, Any]],
    annotations: Sequence[SentenceEntityAnnotation | dict[str, Any]] | None = None,
    wrap_annotations: bool = False,
    parse_date: Callable[[str], Any] = default_parse_date,
) -> ChapterTree:
    """Build the canonical tree of one chapter.

    ``annotations`` are stored in ``sect.annotations``; with
    ``wrap_annotations`` the matching sentence texts are also wrapped in
    entity tags. Raises :class:`harvest.errors.ValidationError` when any
    input (or the assembled tree) is invalid.
    """

    params: ChapterParams = _checked(parse_chapter_params(chapter_params))
    meta: Metadata = _checked(parse_metadata(metadata, parse_date=parse_date))
    page_models: list[Page] = _checked(parse_pages(list(pages)))
    entity_annotations: list[SentenceEntityAnnotation] = (
        _checked(parse_annotations(list(annotations))) if annotations else []
    )

    if params.genre != meta.genre.code:
        raise ValidationError(
            f"chapter genre {params.genre!r} does not match metadata genre {meta.genre.code!r}"
        )
    if params.document_number != meta.document_number:
        raise ValidationError(
            "chapter document number does not match metadata: "
            f"{params.document_number} != {meta.document_number}"
        )

    document_id = get_document_id(params)
    chapter_id = get_chapter_id(params)

    wrap_with = entity_annotations if wrap_annotations else None
    footnotes = collect_footnotes(page_models)
    headings = collect_headings(page_models)

    raw = {
        "root": {
            "file": {
                "id": document_id,
                "number": meta.document_number,
                "meta": {
                    **meta.to_tree_meta().model_dump(by_alias=True),
                    "documentId": document_id,
                },
                "sect": {
                    "id": chapter_id,
                    "name": params.chapter_name,
                    "number": params.chapter_number,
                    "pages": [
                        {
                            "id": page.id,
                            "number": page.number,
                            "sentences": [
                                _sentence_payload(sentence, wrap_with)
                                for sentence in page.sentences
                            ],
                        }
                        for page in page_models
                    ],
                    "footnotes": [note.model_dump(by_alias=True) for note in footnotes],
                    "headings": [heading.model_dump(by_alias=True) for heading in headings],
                    "annotations": [
                        item.model_dump(by_alias=True, exclude_none=True)
                        for item in entity_annotations
                    ]
                    or None,
                },
            }
        }
    }

    tree: ChapterTree = _checked(parse_chapter_tree(raw))
    logger.debug(
        "chapter tree generated",
        document_id=document_id,
        chapter_id=chapter_id,
        pages=len(page_models),
        footnotes=len(footnotes),
        headings=len(headings),
        annotations=len(entity_annotations),
    )
    return tree


def regenerate_tree(
    tree: ChapterTree,
    chapter_params: ChapterParams,
    wrap_annotations: bool = False,
) -> ChapterTree:
    """Rebuild ``tree`` from its own pages and ``sect.annotations``.

    Used after annotations were imported into an existing tree; footnotes and
    headings already lifted into the section are carried over unchanged.
    """

    meta = tree.file.meta.model_dump(by_alias=True)
    rebuilt = generate_tree(
        chapter_params,
        meta,
        [page.model_dump(by_alias=True, exclude_none=True) for page in tree.sect.pages],
        annotations=tree.sect.annotations,
        wrap_annotations=wrap_annotations,
        parse_date=lambda value: value,
    )
    sect = rebuilt.sect.model_copy(
        update={"footnotes": tree.sect.footnotes, "headings": tree.sect.headings}
    )
    file = rebuilt.file.model_copy(update={"sect": sect})
    return rebuilt.model_copy(update={"root": rebuilt.root.model_copy(update={"file": file})})
