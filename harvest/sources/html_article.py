"""Reference content source for plain HTML article pages.

Fetches pages with ``httpx`` (retried with ``tenacity``), parses them with
BeautifulSoup and turns headings, paragraphs and footnotes into the page /
sentence payload accepted by the crawler.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable
from urllib.parse import urljoin

import httpx
import structlog
from bs4 import BeautifulSoup, Tag
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from harvest.core.ids import MAX_SENTENCE_NUMBER, get_page_id, get_sentence_id
from harvest.core.schema import ChapterParams, DocumentParams, Metadata
from harvest.crawler.sources import ChapterLink, ChapterProps
from harvest.errors import CollaboratorError
from harvest.knowledge.footnotes import extract_footnotes, remove_footnotes, resolve_footnotes
from harvest.knowledge.markdown import normalize_whitespace
from harvest.knowledge.text import RegexSentenceSplitter, SentenceSplitter
from settings import Settings, get_settings

logger = structlog.get_logger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
BLOCK_TAGS = [*HEADING_TAGS, "p", "li", "blockquote"]


@dataclass(frozen=True)
class Block:
    kind: str
    text: str
    level: int = 0


def _text_of(node: Tag) -> str:
    return " ".join(normalize_whitespace(node.get_text()).split())


def _footnote_label(node: Tag, index: int) -> str:
    label = node.get("data-label") or node.get("id") or ""
    if isinstance(label, list):
        label = label[0] if label else ""
    label = str(label)
    for prefix in ("fn-", "fn", "note-", "note"):
        if label.startswith(prefix) and len(label) > len(prefix):
            return label[len(prefix):]
    return label or str(index + 1)


def parse_article(
    html: str,
    content_selector: str = "article, .entry-content, main, body",
    footnote_selector: str = ".footnotes li, aside.footnotes p",
) -> tuple[list[Block], dict[str, str]]:
    """Return the content blocks in document order and footnote bodies by label."""

    soup = BeautifulSoup(html, "html.parser")
    for node in soup(["script", "style", "nav", "header", "footer", "form"]):
        node.decompose()

    footnotes: dict[str, str] = {}
    for index, node in enumerate(soup.select(footnote_selector)):
        body = _text_of(node)
        if body:
            footnotes[_footnote_label(node, index)] = body
    for container in soup.select(".footnotes, aside.footnotes"):
        container.decompose()

    # selectors are tried in the given order, not document order
    root: Tag = soup
    for selector in content_selector.split(","):
        found = soup.select_one(selector.strip())
        if found is not None:
            root = found
            break
    blocks: list[Block] = []
    for node in root.find_all(BLOCK_TAGS):
        # nested blocks (p inside li/blockquote) are visited on their own
        if node.find(BLOCK_TAGS):
            continue
        text = _text_of(node)
        if not text:
            continue
        if node.name in HEADING_TAGS:
            blocks.append(Block("heading", text, int(node.name[1])))
        else:
            blocks.append(Block("paragraph", text))
    return blocks, footnotes


def build_pages(
    blocks: Iterable[Block],
    footnotes: dict[str, str],
    chapter_params: ChapterParams,
    splitter: SentenceSplitter,
    sentences_per_page: int = MAX_SENTENCE_NUMBER - 1,
) -> list[dict[str, Any]]:
    """Split paragraphs into sentences and group them into numbered pages.

    Pending headings attach to the first sentence of the next paragraph.
    Footnote markers are removed from the sentence text and kept as
    positioned footnotes.
    """

    params = chapter_params.model_dump()
    pages: list[dict[str, Any]] = []
    sentences: list[dict[str, Any]] = []
    pending_headings: list[Block] = []
    heading_order = 0

    def _flush() -> None:
        page_number = len(pages) + 1
        pages.append(
            {
                "id": get_page_id({**params, "page_number": page_number}),
                "number": page_number,
                "sentences": list(sentences),
            }
        )
        sentences.clear()

    for block in blocks:
        if block.kind == "heading":
            pending_headings.append(block)
            continue
        for index, raw in enumerate(splitter.split(block.text)):
            if len(sentences) >= sentences_per_page:
                _flush()
            sentence_id = get_sentence_id(
                {**params, "page_number": len(pages) + 1, "sentence_number": len(sentences) + 1}
            )
            sentence: dict[str, Any] = {
                "id": sentence_id,
                "type": "single",
                "text": remove_footnotes(raw),
            }
            notes = resolve_footnotes(extract_footnotes(raw), footnotes, sentence_id=sentence_id)
            if notes:
                sentence["footnotes"] = notes
            if index == 0 and pending_headings:
                sentence["headings"] = []
                for heading in pending_headings:
                    sentence["headings"].append(
                        {
                            "text": heading.text,
                            "level": heading.level,
                            "order": heading_order,
                            "sentenceId": sentence_id,
                        }
                    )
                    heading_order += 1
                pending_headings = []
            sentences.append(sentence)

    if sentences:
        _flush()
    return pages


def to_markdown(blocks: Iterable[Block], footnotes: dict[str, str]) -> str:
    parts = [
        f"{'#' * block.level} {block.text}" if block.kind == "heading" else block.text
        for block in blocks
    ]
    if footnotes:
        parts.append("---")
        parts.extend(f"[{label}]: {body}" for label, body in footnotes.items())
    return "\n\n".join(parts) + "\n"


class HtmlArticleSource:
    """Content source for sites that serve each chapter as one HTML page."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        splitter: SentenceSplitter | None = None,
        content_selector: str = "article, .entry-content, main, body",
        chapter_selector: str = ".toc a, a.chapter",
        footnote_selector: str = ".footnotes li, aside.footnotes p",
        retry_wait: Any = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client
        self.splitter = splitter or RegexSentenceSplitter()
        self.content_selector = content_selector
        self.chapter_selector = chapter_selector
        self.footnote_selector = footnote_selector
        self.retry_wait = retry_wait if retry_wait is not None else wait_exponential(multiplier=1, min=1, max=30)

    async def _get(self, client: httpx.AsyncClient, url: str) -> str:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max(1, self.settings.fetch_retries)),
            wait=self.retry_wait,
            retry=retry_if_exception_type(httpx.HTTPError),
            reraise=True,
        ):
            with attempt:
                resp = await client.get(url)
                resp.raise_for_status()
                return resp.text
        raise CollaboratorError(f"no attempt made for {url}")  # pragma: no cover

    async def fetch_html(self, url: str) -> str:
        if not url:
            raise CollaboratorError("empty source URL")
        try:
            if self._client is not None:
                html = await self._get(self._client, url)
            else:
                async with httpx.AsyncClient(
                    timeout=self.settings.request_timeout,
                    headers={"User-Agent": self.settings.user_agent},
                    follow_redirects=True,
                ) as client:
                    html = await self._get(client, url)
        except httpx.HTTPError as exc:
            logger.warning("fetch failed", url=url, error=str(exc))
            raise CollaboratorError(f"fetch failed for {url}: {exc}") from exc
        logger.debug("page fetched", url=url, content_length=len(html))
        return html

    async def discover_chapters(
        self, href: str, params: DocumentParams, metadata: Metadata
    ) -> list[ChapterLink]:
        soup = BeautifulSoup(await self.fetch_html(href), "html.parser")
        chapters: list[ChapterLink] = []
        seen: set[str] = set()
        for anchor in soup.select(self.chapter_selector):
            target = anchor.get("href")
            if not target:
                continue
            url = urljoin(href, str(target))
            if url in seen:
                continue
            seen.add(url)
            chapters.append(
                ChapterLink(
                    href=url,
                    props=ChapterProps(
                        chapter_number=len(chapters) + 1,
                        chapter_name=_text_of(anchor),
                    ),
                )
            )
        logger.info("chapters discovered", document_id=metadata.document_id, href=href, chapters=len(chapters))
        return chapters

    async def fetch_page_content(
        self, href: str, params: ChapterParams, metadata: Metadata
    ) -> list[dict[str, Any]]:
        blocks, footnotes = parse_article(
            await self.fetch_html(href), self.content_selector, self.footnote_selector
        )
        return build_pages(blocks, footnotes, params, self.splitter)


class HtmlArticleMarkdownSource(HtmlArticleSource):
    """:class:`HtmlArticleSource` that also renders each chapter as Markdown."""

    async def fetch_markdown(self, href: str, params: ChapterParams, metadata: Metadata) -> str:
        blocks, footnotes = parse_article(
            await self.fetch_html(href), self.content_selector, self.footnote_selector
        )
        return to_markdown(blocks, footnotes)
