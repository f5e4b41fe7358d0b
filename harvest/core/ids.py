"""Hierarchical identifiers for documents, chapters, pages and sentences.

An identifier looks like ``RCN_001.002.003.04``: the three category codes
(domain, sub-domain, genre) followed by the zero-padded document, chapter,
page and sentence numbers. Each builder validates every ancestor field, so a
sentence id can only be produced from a fully valid parameter set.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Literal, Mapping

from harvest.errors import ValidationError

from .categories import DOMAIN_CODES, GENRE_CODES, SUB_DOMAIN_CODES

IdLevel = Literal["document", "chapter", "page", "sentence"]

MAX_DOCUMENT_NUMBER = 1000
MAX_CHAPTER_NUMBER = 1000
MAX_PAGE_NUMBER = 1000
MAX_SENTENCE_NUMBER = 100

RE_ID = re.compile(
    r"^(?P<domain>[A-Z])(?P<sub_domain>[A-Z])(?P<genre>[A-Z])"
    r"_(?P<document>\d{3})"
    r"(?:\.(?P<chapter>\d{3})"
    r"(?:\.(?P<page>\d{3})"
    r"(?:\.(?P<sentence>\d{2}))?)?)?$"
)

_NUMBER_FIELDS = (
    ("documentNumber", "document_number", MAX_DOCUMENT_NUMBER),
    ("chapterNumber", "chapter_number", MAX_CHAPTER_NUMBER),
    ("pageNumber", "page_number", MAX_PAGE_NUMBER),
    ("sentenceNumber", "sentence_number", MAX_SENTENCE_NUMBER),
)


@dataclass(frozen=True)
class ParsedId:
    """Parameters recovered from an identifier by :func:`parse_id`."""

    level: IdLevel
    domain: str
    sub_domain: str
    genre: str
    document_number: int
    chapter_number: int | None = None
    page_number: int | None = None
    sentence_number: int | None = None

    def as_params(self) -> dict[str, Any]:
        """Return the camelCase parameter mapping accepted by the builders."""

        params: dict[str, Any] = {
            "domain": self.domain,
            "subDomain": self.sub_domain,
            "genre": self.genre,
            "documentNumber": self.document_number,
        }
        if self.chapter_number is not None:
            params["chapterNumber"] = self.chapter_number
        if self.page_number is not None:
            params["pageNumber"] = self.page_number
        if self.sentence_number is not None:
            params["sentenceNumber"] = self.sentence_number
        return params


def _get(params: Mapping[str, Any] | Any, camel: str, snake: str) -> Any:
    if isinstance(params, Mapping):
        if camel in params:
            return params[camel]
        return params.get(snake)
    value = getattr(params, snake, None)
    if value is None:
        value = getattr(params, camel, None)
    return value


def _validate_number(params: Mapping[str, Any] | Any, depth: int) -> list[int]:
    numbers: list[int] = []
    for camel, snake, upper in _NUMBER_FIELDS[:depth]:
        value = _get(params, camel, snake)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{camel} must be an integer, got {value!r}")
        if not 0 <= value < upper:
            raise ValidationError(f"{camel} must be in [0, {upper}), got {value}")
        numbers.append(value)
    return numbers


def get_base_prefix(params: Mapping[str, Any] | Any) -> str:
    """Return the ``DSG`` prefix built from the three category codes."""

    domain = _get(params, "domain", "domain")
    sub_domain = _get(params, "subDomain", "sub_domain")
    genre = _get(params, "genre", "genre")
    if domain not in DOMAIN_CODES:
        raise ValidationError(f"Unknown domain code: {domain!r}")
    if sub_domain not in SUB_DOMAIN_CODES:
        raise ValidationError(f"Unknown sub-domain code: {sub_domain!r}")
    if genre not in GENRE_CODES:
        raise ValidationError(f"Unknown or reserved genre code: {genre!r}")
    return f"{domain}{sub_domain}{genre}".upper()


def get_document_id(params: Mapping[str, Any] | Any) -> str:
    (document,) = _validate_number(params, 1)
    return f"{get_base_prefix(params)}_{document:03d}"


def get_chapter_id(params: Mapping[str, Any] | Any) -> str:
    _, chapter = _validate_number(params, 2)
    return f"{get_document_id(params)}.{chapter:03d}"


def get_page_id(params: Mapping[str, Any] | Any) -> str:
    *_, page = _validate_number(params, 3)
    return f"{get_chapter_id(params)}.{page:03d}"


def get_sentence_id(params: Mapping[str, Any] | Any) -> str:
    *_, sentence = _validate_number(params, 4)
    return f"{get_page_id(params)}.{sentence:02d}"


def parse_id(value: str) -> ParsedId | None:
    """Parse an identifier of any level; return ``None`` when it does not match."""

    if not isinstance(value, str):
        return None
    match = RE_ID.match(value)
    if match is None:
        return None

    def _num(name: str) -> int | None:
        raw = match.group(name)
        return int(raw) if raw is not None else None

    chapter = _num("chapter")
    page = _num("page")
    sentence = _num("sentence")
    if sentence is not None:
        level: IdLevel = "sentence"
    elif page is not None:
        level = "page"
    elif chapter is not None:
        level = "chapter"
    else:
        level = "document"

    return ParsedId(
        level=level,
        domain=match.group("domain"),
        sub_domain=match.group("sub_domain"),
        genre=match.group("genre"),
        document_number=int(match.group("document")),
        chapter_number=chapter,
        page_number=page,
        sentence_number=sentence,
    )
