"""Entity annotation overlap resolution and inline tag wrapping.

All offsets are 0-based character indices into the plain sentence text.
Inputs are never mutated; models are copied with ``model_copy``.
"""

from __future__ import annotations

from typing import Iterable, Sequence, TypeVar

import structlog

from harvest.core.schema import EntityAnnotation, SentenceEntityAnnotation
from harvest.core.tree_schema import ChapterTree

logger = structlog.get_logger(__name__)

A = TypeVar("A", bound=EntityAnnotation)


def _contains(outer: EntityAnnotation, inner: EntityAnnotation) -> bool:
    return (
        inner.start >= outer.start
        and inner.end <= outer.end
        and inner.start < outer.end
    )


def _overlaps(left: EntityAnnotation, right: EntityAnnotation) -> bool:
    return left.start < right.end and left.end > right.start


def resolve_overlap(annotations: Sequence[A], overlap_keep_right: bool = True) -> list[A]:
    """Split partially overlapping annotations so no two share a character.

    Annotations are walked in descending ``start`` order, comparing each one
    (``current``) with its right neighbour (``prev``). Disjoint and nested
    pairs are left alone. For a partial overlap the shared range is cut off
    one side and emitted as a new fragment carrying that side's labels:

    * ``overlap_keep_right=True``: ``current`` ends at ``prev.start`` and the
      fragment ``[prev.start, current.end)`` keeps ``current``'s labels.
    * otherwise ``prev`` starts at ``current.end`` and the fragment
      ``[prev.start, current.end)`` keeps ``prev``'s labels.

    Only adjacent pairs are compared, in a single pass, so chains of three
    or more overlapping spans are resolved pairwise from right to left.
    The result is sorted by ``start``; ties keep the walk order.
    """

    if len(annotations) <= 1:
        return list(annotations)

    ordered = sorted(annotations, key=lambda item: item.start, reverse=True)
    fragments: list[A] = []

    for i in range(1, len(ordered)):
        current = ordered[i]
        prev = ordered[i - 1]

        if prev.start >= current.end:
            continue
        if _contains(current, prev) or _contains(prev, current):
            continue
        if not _overlaps(prev, current):
            continue

        if overlap_keep_right:
            cut = prev.start - current.start
            fragments.append(
                current.model_copy(
                    update={"start": prev.start, "end": current.end, "text": current.text[cut:]}
                )
            )
            ordered[i] = current.model_copy(update={"end": prev.start, "text": current.text[:cut]})
        else:
            cut = current.end - prev.start
            fragments.append(
                prev.model_copy(
                    update={"start": prev.start, "end": current.end, "text": prev.text[:cut]}
                )
            )
            ordered[i - 1] = prev.model_copy(update={"start": current.end, "text": prev.text[cut:]})

    return sorted(ordered + fragments, key=lambda item: item.start)


def tag_pair(annotation: EntityAnnotation) -> tuple[str, str]:
    """Return the opening and closing tag for an annotation's primary label."""

    label = annotation.labels[0]
    if annotation.id:
        return f'<{label} ID="{annotation.id}">', f"</{label}>"
    return f"<{label}>", f"</{label}>"


def wrap_labels(text: str, annotations: Sequence[EntityAnnotation]) -> str:
    """Splice ``<LABEL>...</LABEL>`` tags around every annotated span.

    Nested spans produce nested tags. Offsets of spans processed later are
    shifted by the tags already spliced before or inside them, so a single
    right-to-left pass over the text is enough.
    """

    if not annotations:
        return text

    resolved = resolve_overlap(annotations, overlap_keep_right=True)
    ordered = sorted(resolved, key=lambda item: (-item.start, -(item.end - item.start)))
    tags = [tag_pair(item) for item in ordered]
    bounds = [[item.start, item.end] for item in ordered]

    for i in range(len(ordered)):
        open_i, close_i = tags[i]
        start_i, end_i = bounds[i]
        for j in range(i + 1, len(ordered)):
            start_j, end_j = bounds[j]
            if start_j >= start_i and end_j <= end_i and start_j < end_i:
                bounds[j] = [start_j + len(open_i), end_j + len(open_i)]
            elif start_j <= start_i and end_j >= end_i and start_j < end_i:
                bounds[j] = [start_j, end_j + len(open_i) + len(close_i)]

    result = text
    for (open_tag, close_tag), (start, end) in zip(tags, bounds):
        result = result[:start] + open_tag + result[start:end] + close_tag + result[end:]
    return result


def annotations_for(
    annotations: Iterable[SentenceEntityAnnotation],
    sentence_id: str,
    language_code: str | None = None,
) -> list[SentenceEntityAnnotation]:
    """Select the annotations of one sentence (or one language variant)."""

    return [
        item
        for item in annotations
        if item.sentence_id == sentence_id
        and (language_code is None or item.language_code == language_code)
    ]


def update_annotations(
    tree: ChapterTree, annotations: Sequence[SentenceEntityAnnotation]
) -> ChapterTree:
    """Return a copy of ``tree`` whose ``sect.annotations`` is replaced."""

    known = {sentence.id for sentence in tree.iter_sentences()}
    unknown = {item.sentence_id for item in annotations} - known
    if unknown:
        logger.warning(
            "annotations for unknown sentences",
            chapter_id=tree.sect.id,
            sentence_ids=sorted(unknown),
        )
    sect = tree.sect.model_copy(update={"annotations": list(annotations) or None})
    file = tree.file.model_copy(update={"sect": sect})
    return tree.model_copy(update={"root": tree.root.model_copy(update={"file": file})})
