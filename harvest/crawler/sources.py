"""Collaborator capabilities consumed by the crawler.

A source is any object exposing ``discover_chapters`` and
``fetch_page_content`` coroutines, plus ``fetch_markdown`` when the source can
also produce a Markdown rendition. Sources are injected into
:class:`harvest.crawler.run_crawl.Crawler`; nothing subclasses a base class.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from harvest.core.schema import ChapterParams, DocumentParams, Metadata


class ChapterProps(BaseModel):
    chapter_number: int = Field(alias="chapterNumber", ge=0, lt=1000)
    chapter_name: str = Field(default="", alias="chapterName")
    md_href: str | None = Field(default=None, alias="mdHref")

    model_config = ConfigDict(populate_by_name=True)


class ChapterLink(BaseModel):
    """One chapter returned by chapter discovery."""

    href: str
    props: ChapterProps


@runtime_checkable
class ContentSource(Protocol):
    async def discover_chapters(
        self, href: str, params: DocumentParams, metadata: Metadata
    ) -> list[ChapterLink]: ...

    async def fetch_page_content(
        self, href: str, params: ChapterParams, metadata: Metadata
    ) -> list[Any]: ...


@runtime_checkable
class MarkdownSource(Protocol):
    async def fetch_markdown(
        self, href: str, params: ChapterParams, metadata: Metadata
    ) -> str: ...


def supports_markdown(source: object) -> bool:
    return isinstance(source, MarkdownSource)
