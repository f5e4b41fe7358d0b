"""Schema of the per-chapter tree persisted to disk."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import Field, field_validator

from .categories import LANGUAGE_CODES
from .schema import (
    ChapterNumber,
    CorpusModel,
    DocumentNumber,
    ExtraAttributeValue,
    PageNumber,
    ParseResult,
    RE_CAMEL_CASE_KEY,
    SentenceEntityAnnotation,
    SentenceHeading,
    TreeFootnote,
    TreeMeta,
    safe_parse,
)


class _TreeSentence(CorpusModel):
    id: str
    extra_attributes: dict[str, ExtraAttributeValue] | None = None

    @field_validator("extra_attributes")
    @classmethod
    def _camel_keys(
        cls, value: dict[str, ExtraAttributeValue] | None
    ) -> dict[str, ExtraAttributeValue] | None:
        for key in value or {}:
            if not RE_CAMEL_CASE_KEY.match(key):
                raise ValueError(f"String must be in camelCase format: {key!r}")
        return value


class TreeSingleSentence(_TreeSentence):
    type: Literal["single"] = "single"
    text: str


class TreeLanguageText(CorpusModel):
    language_code: str
    text: str

    @field_validator("language_code")
    @classmethod
    def _code(cls, value: str) -> str:
        if value not in LANGUAGE_CODES:
            raise ValueError(f"unknown language code {value!r}")
        return value


class TreeMultiSentence(_TreeSentence):
    type: Literal["multiple"] = "multiple"
    array: list[TreeLanguageText]


TreeSentence = Annotated[
    Union[TreeSingleSentence, TreeMultiSentence],
    Field(discriminator="type"),
]


class TreePage(CorpusModel):
    id: str
    number: PageNumber
    sentences: list[TreeSentence]


class Section(CorpusModel):
    id: str
    name: str = ""
    number: ChapterNumber
    pages: list[TreePage]
    footnotes: list[TreeFootnote] | None = None
    headings: list[SentenceHeading] | None = None
    annotations: list[SentenceEntityAnnotation] | None = None


class TreeFile(CorpusModel):
    id: str
    number: DocumentNumber
    meta: TreeMeta
    sect: Section


class TreeRoot(CorpusModel):
    file: TreeFile


class ChapterTree(CorpusModel):
    """Root aggregate: one chapter of one document, ready to serialise."""

    root: TreeRoot

    @property
    def file(self) -> TreeFile:
        return self.root.file

    @property
    def sect(self) -> Section:
        return self.root.file.sect

    def iter_sentences(self):
        for page in self.sect.pages:
            yield from page.sentences


def parse_chapter_tree(value: Any) -> ParseResult[ChapterTree]:
    return safe_parse(ChapterTree, value, "chapter tree")
