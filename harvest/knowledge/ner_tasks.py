"""Export chapter sentences as NER labelling tasks and import the labels back.

Task files follow the labelling tool's JSON import format: one object per
sentence (or language variant) with a ``data`` block and, when labels exist,
``annotations: [{"result": [...]}]``.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Sequence

import structlog
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from harvest.core.ids import parse_id
from harvest.core.schema import (
    ChapterParams,
    CorpusModel,
    EntityLabel,
    SentenceEntityAnnotation,
    SentenceType,
)
from harvest.core.tree_schema import ChapterTree, TreeMultiSentence
from harvest.errors import PersistenceError, ValidationError

from .annotations import annotations_for, update_annotations

logger = structlog.get_logger(__name__)


class NerTaskData(CorpusModel):
    text: str
    document_id: str
    chapter_id: str
    sentence_id: str
    sentence_type: SentenceType
    language_code: str = ""
    title: str = ""
    genre_code: str = ""


class NerValue(BaseModel):
    start: int = Field(ge=0)
    end: int = Field(ge=0)
    text: str
    labels: list[EntityLabel] = Field(min_length=1)


class NerResult(BaseModel):
    value: NerValue
    from_name: str = "label"
    to_name: str = "text"
    type: str = "labels"


class NerAnnotation(BaseModel):
    result: list[NerResult] = Field(default_factory=list)


class NerTask(BaseModel):
    data: NerTaskData
    annotations: list[NerAnnotation] | None = None

    def dump(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _results(annotations: Sequence[SentenceEntityAnnotation]) -> list[NerAnnotation] | None:
    if not annotations:
        # an empty list would be imported as ground truth
        return None
    return [
        NerAnnotation(
            result=[
                NerResult(
                    value=NerValue(start=item.start, end=item.end, text=item.text, labels=item.labels)
                )
                for item in annotations
            ]
        )
    ]


def tree_to_ner_tasks(tree: ChapterTree) -> list[NerTask]:
    """One task per single sentence and per language variant."""

    meta = tree.file.meta
    existing = tree.sect.annotations or []
    tasks: list[NerTask] = []
    for sentence in tree.iter_sentences():
        if isinstance(sentence, TreeMultiSentence):
            variants = [(variant.language_code, variant.text) for variant in sentence.array]
        else:
            variants = [("", sentence.text)]
        for language_code, text in variants:
            matching = annotations_for(existing, sentence.id, language_code or None)
            tasks.append(
                NerTask(
                    data=NerTaskData(
                        text=text,
                        document_id=tree.file.id,
                        chapter_id=tree.sect.id,
                        sentence_id=sentence.id,
                        sentence_type=sentence.type,
                        language_code=language_code,
                        title=meta.title,
                        genre_code=meta.genre.code,
                    ),
                    annotations=_results(matching),
                )
            )
    return tasks


def tasks_to_annotations(tasks: Iterable[NerTask]) -> list[SentenceEntityAnnotation]:
    annotations: list[SentenceEntityAnnotation] = []
    for task in tasks:
        for annotation in task.annotations or []:
            for result in annotation.result:
                annotations.append(
                    SentenceEntityAnnotation(
                        **result.value.model_dump(),
                        sentence_id=task.data.sentence_id,
                        sentence_type=task.data.sentence_type,
                        language_code=task.data.language_code or None,
                    )
                )
    return annotations


def merge_tasks(existing: Sequence[NerTask], incoming: Iterable[NerTask]) -> list[NerTask]:
    """Replace the annotations of known sentences and append new ones."""

    merged = list(existing)
    index = {
        (task.data.sentence_id, task.data.language_code): pos for pos, task in enumerate(merged)
    }
    for task in incoming:
        key = (task.data.sentence_id, task.data.language_code)
        if key in index:
            current = merged[index[key]]
            merged[index[key]] = current.model_copy(update={"annotations": task.annotations})
        else:
            index[key] = len(merged)
            merged.append(task)
    return merged


def chapter_params_of(tree: ChapterTree) -> ChapterParams:
    """Recover the chapter parameters a tree was generated from."""

    parsed = parse_id(tree.sect.id)
    if parsed is None or parsed.chapter_number is None:
        raise ValidationError(f"Invalid chapter id: {tree.sect.id!r}")
    return ChapterParams(
        domain=parsed.domain,
        sub_domain=parsed.sub_domain,
        genre=tree.file.meta.genre.code,
        document_number=tree.file.meta.document_number,
        chapter_number=tree.sect.number,
        chapter_name=tree.sect.name,
    )


def apply_tasks(tree: ChapterTree, tasks: Iterable[NerTask]) -> ChapterTree:
    """Return ``tree`` with its annotations replaced by those in ``tasks``."""

    return update_annotations(tree, tasks_to_annotations(tasks))


def read_tasks(path: str | Path) -> list[NerTask]:
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8") or "[]")
        return [NerTask.model_validate(item) for item in raw]
    except (OSError, json.JSONDecodeError, PydanticValidationError) as exc:
        raise PersistenceError(f"cannot read task file {path}: {exc}") from exc


def write_tasks(path: str | Path, tasks: Sequence[NerTask]) -> Path:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps([task.dump() for task in tasks], ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
    except OSError as exc:
        raise PersistenceError(f"cannot write task file {path}: {exc}") from exc
    logger.info("ner tasks written", path=str(path), tasks=len(tasks))
    return path
