"""Pydantic models for corpus entities.

Models accept and emit camelCase keys (``documentNumber``, ``sourceURL``)
because that is the shape of the metadata table, the collaborator payloads and
the persisted trees. Python code uses the snake_case attribute names.

Routine shape mismatches are reported through :class:`ParseResult` instead of
exceptions; call :meth:`ParseResult.unwrap` when an exception is wanted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Annotated, Any, Callable, Generic, Literal, TypeVar, Union

from pydantic import (
    AnyUrl,
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    TypeAdapter,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from harvest.errors import ValidationError

from .categories import (
    DOMAIN_CODES,
    GENRE_CODES,
    LANGUAGE_CODES,
    LANGUAGE_LABELS,
    SUB_DOMAIN_CODES,
    find_genre,
    find_tag,
)

T = TypeVar("T")

CATEGORY_SEPARATOR = "|"
RE_CAMEL_CASE_KEY = re.compile(r"^[a-z][a-zA-Z0-9]*$")

DocumentNumber = Annotated[int, Field(ge=0, lt=1000)]
ChapterNumber = Annotated[int, Field(ge=0, lt=1000)]
PageNumber = Annotated[int, Field(ge=0, lt=1000)]
SentenceNumber = Annotated[int, Field(ge=0, lt=100)]

SourceType = Literal["web", "pdf", "hardCopy"]
SentenceType = Literal["single", "multiple"]
EntityLabel = Literal["PER", "LOC", "ORG", "TITLE", "TME", "NUM"]
ENTITY_LABELS: tuple[str, ...] = ("PER", "LOC", "ORG", "TITLE", "TME", "NUM")

ExtraAttributeValue = Union[StrictBool, StrictInt, StrictFloat, StrictStr]

_url_adapter = TypeAdapter(AnyUrl)


class CorpusModel(BaseModel):
    """Base model: camelCase aliases, unknown keys dropped, immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    def dump(self) -> dict[str, Any]:
        """Return the camelCase representation without unset optionals."""

        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _check_code(value: str, allowed: frozenset[str], kind: str) -> str:
    if value not in allowed:
        raise ValueError(f"unknown {kind} code {value!r}")
    return value


class GenreParams(CorpusModel):
    domain: str
    sub_domain: str
    genre: str

    @field_validator("domain")
    @classmethod
    def _domain(cls, value: str) -> str:
        return _check_code(value, DOMAIN_CODES, "domain")

    @field_validator("sub_domain")
    @classmethod
    def _sub_domain(cls, value: str) -> str:
        return _check_code(value, SUB_DOMAIN_CODES, "sub-domain")

    @field_validator("genre")
    @classmethod
    def _genre(cls, value: str) -> str:
        return _check_code(value, GENRE_CODES, "genre")


class DocumentParams(GenreParams):
    document_number: DocumentNumber


class ChapterParams(DocumentParams):
    chapter_number: ChapterNumber
    chapter_name: str = ""


class PageParams(DocumentParams):
    chapter_number: ChapterNumber
    page_number: PageNumber


class SentenceParams(PageParams):
    sentence_number: SentenceNumber


class GenreRef(CorpusModel):
    """Genre triple; category and translated label must agree with the code."""

    code: str
    category: str
    vietnamese: str

    @model_validator(mode="after")
    def _cross_check(self) -> "GenreRef":
        _check_code(self.code, GENRE_CODES, "genre")
        genre = find_genre(self.category)
        if genre is None or genre.vietnamese != self.vietnamese:
            raise ValueError("Invalid genre category or vietnamese translation")
        if genre.code != self.code:
            raise ValueError(
                f"genre code {self.code!r} does not match category {self.category!r}"
            )
        return self


class TagRef(CorpusModel):
    category: str
    vietnamese: str = ""

    @model_validator(mode="after")
    def _cross_check(self) -> "TagRef":
        if self.category == "":
            return self
        tag = find_tag(self.category)
        if tag is None or tag.vietnamese != self.vietnamese:
            raise ValueError("Invalid tag category or vietnamese translation")
        return self


class TreeMeta(CorpusModel):
    """Bibliographic record as it appears inside a chapter tree."""

    document_id: str
    document_number: DocumentNumber
    genre: GenreRef
    tags: list[TagRef] = Field(default_factory=list)
    title: str
    volume: str = ""
    author: str = ""
    source_type: SourceType
    source_url: str = Field(default="", alias="sourceURL")
    source: str = ""
    has_chapters: bool = False
    period: str = ""
    published_time: str = ""
    language: str
    note: str = ""

    @field_validator("source_url")
    @classmethod
    def _url_or_empty(cls, value: str) -> str:
        if value:
            _url_adapter.validate_python(value)
        return value

    @field_validator("language")
    @classmethod
    def _language(cls, value: str) -> str:
        if value not in LANGUAGE_LABELS:
            raise ValueError(f"unknown language {value!r}")
        return value


class Metadata(TreeMeta):
    """Bibliographic record for one corpus entry."""

    requires_manual_check: bool = False

    def to_tree_meta(self) -> TreeMeta:
        return TreeMeta.model_validate(
            self.model_dump(by_alias=True, exclude={"requires_manual_check"})
        )

    def document_params(self, domain: str, sub_domain: str) -> DocumentParams:
        return DocumentParams(
            domain=domain,
            sub_domain=sub_domain,
            genre=self.genre.code,
            document_number=self.document_number,
        )


def _string_bool(value: Any) -> Any:
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1"}:
            return True
        if lowered in {"false", "0", ""}:
            return False
    return value


def _split_categories(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(CATEGORY_SEPARATOR) if part.strip()]
    return value


class MetadataRow(CorpusModel):
    """One row of the tab-separated metadata table."""

    document_id: str
    document_number: DocumentNumber
    genre_code: str
    genre_category: str = ""
    genre_vietnamese: str = ""
    tag_category: list[str] = Field(default_factory=list)
    tag_vietnamese: list[str] = Field(default_factory=list)
    title: str
    volume: str = ""
    author: str = ""
    source_type: SourceType
    source_url: str = Field(default="", alias="sourceURL")
    source: str = ""
    has_chapters: bool = False
    period: str = ""
    published_time: str = ""
    language: str
    requires_manual_check: bool = False
    note: str = ""

    @field_validator("document_number", mode="before")
    @classmethod
    def _int_from_str(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        return value

    @field_validator("tag_category", "tag_vietnamese", mode="before")
    @classmethod
    def _split(cls, value: Any) -> Any:
        return _split_categories(value)

    @field_validator("has_chapters", "requires_manual_check", mode="before")
    @classmethod
    def _bool(cls, value: Any) -> Any:
        return _string_bool(value)

    @field_validator("genre_code")
    @classmethod
    def _genre(cls, value: str) -> str:
        return _check_code(value, GENRE_CODES, "genre")

    def to_metadata(self) -> Metadata:
        """Map the flat row to :class:`Metadata`.

        Tag translations are looked up from the tag enumeration; the
        :class:`TagRef` validator rejects categories that do not exist.
        """

        tags = []
        for category in self.tag_category:
            tag = find_tag(category)
            tags.append({"category": category, "vietnamese": tag.vietnamese if tag else ""})

        return Metadata.model_validate(
            {
                "documentId": self.document_id,
                "documentNumber": self.document_number,
                "genre": {
                    "code": self.genre_code,
                    "category": self.genre_category,
                    "vietnamese": self.genre_vietnamese,
                },
                "tags": tags,
                "title": self.title,
                "volume": self.volume,
                "author": self.author,
                "sourceType": self.source_type,
                "sourceURL": self.source_url,
                "source": self.source,
                "hasChapters": self.has_chapters,
                "period": self.period,
                "publishedTime": self.published_time,
                "language": self.language,
                "requiresManualCheck": self.requires_manual_check,
                "note": self.note,
            }
        )


class Footnote(CorpusModel):
    label: str
    text: str
    position: int = Field(ge=0)


class SentenceFootnote(Footnote):
    sentence_id: str


class TreeFootnote(SentenceFootnote):
    order: int = Field(ge=0)


class Heading(CorpusModel):
    text: str
    level: int = Field(ge=1, le=6)
    order: int = Field(ge=0)


class SentenceHeading(Heading):
    sentence_id: str


class _BaseSentence(CorpusModel):
    id: str
    headings: list[SentenceHeading] | None = None
    extra_attributes: dict[str, ExtraAttributeValue] | None = None

    @field_validator("extra_attributes")
    @classmethod
    def _camel_keys(
        cls, value: dict[str, ExtraAttributeValue] | None
    ) -> dict[str, ExtraAttributeValue] | None:
        if value:
            for key in value:
                if not RE_CAMEL_CASE_KEY.match(key):
                    raise ValueError(f"String must be in camelCase format: {key!r}")
        return value


class SingleLanguageSentence(_BaseSentence):
    type: Literal["single"] = "single"
    text: str
    footnotes: list[SentenceFootnote] | None = None


class LanguageText(CorpusModel):
    language_code: str
    text: str
    footnotes: list[SentenceFootnote] | None = None

    @field_validator("language_code")
    @classmethod
    def _code(cls, value: str) -> str:
        return _check_code(value, LANGUAGE_CODES, "language")


class MultiLanguageSentence(_BaseSentence):
    type: Literal["multiple"] = "multiple"
    array: list[LanguageText]


Sentence = Annotated[
    Union[SingleLanguageSentence, MultiLanguageSentence],
    Field(discriminator="type"),
]


class Page(CorpusModel):
    id: str
    number: PageNumber
    sentences: list[Sentence]


class EntityAnnotation(CorpusModel):
    start: int = Field(ge=0)
    end: int = Field(ge=0)
    text: str
    labels: list[EntityLabel] = Field(min_length=1)
    id: str | None = None

    @model_validator(mode="after")
    def _ordered(self) -> "EntityAnnotation":
        if self.end < self.start:
            raise ValueError("annotation end must not precede start")
        return self


class SentenceEntityAnnotation(EntityAnnotation):
    sentence_id: str
    sentence_type: SentenceType
    language_code: str | None = None


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Outcome of validating one entity: either ``data`` or ``error``."""

    data: T | None = None
    error: ValidationError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.data  # type: ignore[return-value]


def safe_parse(adapter: TypeAdapter[T] | type[BaseModel], value: Any, context: str = "") -> ParseResult[Any]:
    """Validate ``value`` and capture pydantic errors as a :class:`ParseResult`."""

    try:
        if isinstance(adapter, TypeAdapter):
            data = adapter.validate_python(value)
        elif isinstance(value, adapter):
            data = value
        else:
            data = adapter.model_validate(value)
    except PydanticValidationError as exc:
        return ParseResult(error=ValidationError.from_pydantic(exc, context))
    return ParseResult(data=data)


PAGES_ADAPTER: TypeAdapter[list[Page]] = TypeAdapter(list[Page])
ANNOTATIONS_ADAPTER: TypeAdapter[list[SentenceEntityAnnotation]] = TypeAdapter(
    list[SentenceEntityAnnotation]
)


def parse_chapter_params(value: Any) -> ParseResult[ChapterParams]:
    return safe_parse(ChapterParams, value, "chapter params")


def parse_pages(value: Any) -> ParseResult[list[Page]]:
    return safe_parse(PAGES_ADAPTER, value, "pages")


def parse_annotations(value: Any) -> ParseResult[list[SentenceEntityAnnotation]]:
    return safe_parse(ANNOTATIONS_ADAPTER, value, "annotations")


def parse_metadata_row(value: Any) -> ParseResult[MetadataRow]:
    return safe_parse(MetadataRow, value, "metadata row")


def parse_metadata(
    value: Any, *, parse_date: Callable[[str], Any] | None = None
) -> ParseResult[Metadata]:
    """Validate metadata; with ``parse_date`` also check ``publishedTime``."""

    result: ParseResult[Metadata] = safe_parse(Metadata, value, "metadata")
    if not result.success or parse_date is None:
        return result
    published = result.data.published_time  # type: ignore[union-attr]
    if published:
        try:
            parse_date(published)
        except ValueError:
            return ParseResult(
                error=ValidationError(
                    f"metadata: publishedTime: Invalid date format: {published!r}",
                    [{"loc": "publishedTime", "msg": "Invalid date format"}],
                )
            )
    return result
