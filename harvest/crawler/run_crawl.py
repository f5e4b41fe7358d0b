#!/usr/bin/env python
"""Checkpointed crawl of the documents listed in the metadata table.

Documents are processed one at a time, chapters in discovery order. Every
collaborator call runs under :func:`harvest.crawler.timeout.with_timeout`;
failures are logged and the affected chapter (or document, when chapter
discovery fails) is skipped. A document's checkpoint is completed once all of
its chapters were written.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

import structlog

from harvest.core.categories import DOMAIN_CODES, SUB_DOMAIN_CODES
from harvest.core.ids import get_chapter_id
from harvest.core.schema import ChapterParams, DocumentParams, Metadata, MetadataRow, parse_metadata, parse_pages
from harvest.errors import ValidationError
from harvest.knowledge.serializers import DEFAULT_TREE_FORMATS, TreeFormat
from observability.logging import configure_logging, get_recent_logs
from settings import get_settings

from .checkpoint import Checkpoint, CheckpointOptions, with_checkpoint
from .files import read_metadata_table, write_chapter_content
from .sources import ChapterLink, ChapterProps, ContentSource, supports_markdown
from .timeout import DEFAULT_TASK_TIMEOUT, with_timeout

logger = structlog.get_logger(__name__)


@dataclass
class CrawlReport:
    documents_completed: list[str] = field(default_factory=list)
    documents_failed: list[str] = field(default_factory=list)
    chapters_written: list[str] = field(default_factory=list)
    chapters_failed: list[str] = field(default_factory=list)

    def summary(self) -> dict[str, int]:
        return {
            "documents_completed": len(self.documents_completed),
            "documents_failed": len(self.documents_failed),
            "chapters_written": len(self.chapters_written),
            "chapters_failed": len(self.chapters_failed),
        }


def recent_problems(limit: int = 20) -> list[str]:
    """Most recent buffered WARNING/ERROR lines, oldest first."""

    if limit <= 0:
        return []
    lines = [
        line
        for line in get_recent_logs(limit=2000)
        if line.split(" ", 3)[2:3] in (["WARNING"], ["ERROR"])
    ]
    return lines[-limit:]


def _incomplete(checkpoint: Checkpoint) -> bool:
    return not checkpoint.completed


class Crawler:
    """Drive one source over the documents selected from the metadata table."""

    def __init__(
        self,
        name: str,
        domain: str,
        sub_domain: str,
        source: ContentSource,
        get_metadata_by: Callable[[MetadataRow], bool],
        filter_checkpoint: Callable[[Checkpoint], bool] | None = None,
        sort_checkpoint: Callable[[Checkpoint, Checkpoint], int] | None = None,
        tree_formats: Sequence[TreeFormat] = DEFAULT_TREE_FORMATS,
        metadata_file_path: str | Path | None = None,
        checkpoint_file_path: str | Path | None = None,
        output_dir: str | Path | None = None,
        checkpoint_options: CheckpointOptions | None = None,
        timeout: float | None = None,
    ) -> None:
        if domain not in DOMAIN_CODES:
            raise ValidationError(f"Unknown domain code: {domain!r}")
        if sub_domain not in SUB_DOMAIN_CODES:
            raise ValidationError(f"Unknown sub-domain code: {sub_domain!r}")

        settings = get_settings()
        self.name = name
        self.domain = domain
        self.sub_domain = sub_domain
        self.source = source
        self.get_metadata_by = get_metadata_by
        self.filter_checkpoint = filter_checkpoint or _incomplete
        self.sort_checkpoint = sort_checkpoint
        self.tree_formats = list(tree_formats)
        self.metadata_file_path = Path(metadata_file_path or settings.metadata_file)
        self.checkpoint_file_path = Path(
            checkpoint_file_path or settings.checkpoint_file(domain, sub_domain, name)
        )
        self.output_dir = Path(output_dir or settings.output_dir)
        self.checkpoint_options = checkpoint_options or CheckpointOptions()
        self.timeout = timeout if timeout is not None else (settings.task_timeout or DEFAULT_TASK_TIMEOUT)

    def get_metadata_list(self) -> list[Metadata]:
        return read_metadata_table(self.metadata_file_path, self.get_metadata_by)

    async def run(self) -> CrawlReport:
        """Process every checkpoint in the view; only a corrupt checkpoint file raises."""

        view = await with_checkpoint(
            get_initial_data=self.get_metadata_list,
            get_checkpoint_id=lambda metadata: metadata.document_id,
            filter_checkpoint=self.filter_checkpoint,
            sort_checkpoint=self.sort_checkpoint,
            file_path=self.checkpoint_file_path,
            options=self.checkpoint_options,
        )
        report = CrawlReport()
        logger.info("crawl started", crawler=self.name, documents=len(view.filtered))

        for checkpoint in view.filtered:
            if await self._crawl_document(checkpoint, report):
                view.set_checkpoint_complete(checkpoint.id, True)
                report.documents_completed.append(checkpoint.id)
            else:
                report.documents_failed.append(checkpoint.id)

        logger.info("crawl finished", crawler=self.name, **report.summary())
        return report

    async def _crawl_document(self, checkpoint: Checkpoint, report: CrawlReport) -> bool:
        result = parse_metadata(checkpoint.params)
        if not result.success:
            logger.error("checkpoint metadata invalid", checkpoint_id=checkpoint.id, error=str(result.error))
            return False
        metadata = result.data
        document_id = metadata.document_id

        try:
            document_params = metadata.document_params(self.domain, self.sub_domain)
        except ValueError as exc:
            logger.error("document params invalid", document_id=document_id, error=str(exc))
            return False

        chapters = [ChapterLink(href=metadata.source_url, props=ChapterProps(chapter_number=1))]
        if metadata.has_chapters:
            try:
                discovered = await with_timeout(
                    lambda: self.source.discover_chapters(metadata.source_url, document_params, metadata),
                    self.timeout,
                    f"Chapter discovery timed out for {document_id}",
                )
                chapters = [
                    item if isinstance(item, ChapterLink) else ChapterLink.model_validate(item)
                    for item in discovered
                ]
            except Exception as exc:
                logger.error(
                    "chapter discovery failed",
                    document_id=document_id,
                    href=metadata.source_url,
                    error=str(exc),
                )
                return False
            if not chapters:
                logger.error("no chapters discovered", document_id=document_id, href=metadata.source_url)
                return False

        all_written = True
        for chapter in chapters:
            if not await self._crawl_chapter(chapter, document_params, metadata, report):
                all_written = False
        return all_written

    async def _crawl_chapter(
        self,
        chapter: ChapterLink,
        document_params: DocumentParams,
        metadata: Metadata,
        report: CrawlReport,
    ) -> bool:
        document_id = metadata.document_id
        chapter_number = chapter.props.chapter_number
        label = f"{document_id}#{chapter_number}"
        try:
            chapter_params = ChapterParams(
                **document_params.model_dump(),
                chapter_number=chapter_number,
                chapter_name=chapter.props.chapter_name,
            )
            chapter_id = get_chapter_id(chapter_params)
            label = chapter_id

            raw_pages = await with_timeout(
                lambda: self.source.fetch_page_content(chapter.href, chapter_params, metadata),
                self.timeout,
                f"Page content timed out for {chapter_id}",
            )
            parsed = parse_pages(raw_pages)
            if not parsed.success:
                logger.error(
                    "page content invalid",
                    document_id=document_id,
                    chapter_number=chapter_number,
                    href=chapter.href,
                    error=str(parsed.error),
                )
                report.chapters_failed.append(chapter_id)
                return False

            for tree_format in self.tree_formats:
                content = tree_format.generate(chapter_params, metadata, parsed.data)
                write_chapter_content(
                    chapter_params,
                    self.output_dir,
                    content,
                    tree_format.extension,
                    document_title=metadata.title,
                )

            if supports_markdown(self.source):
                await self._write_markdown(chapter, chapter_params, metadata)
        except Exception as exc:
            logger.error(
                "chapter failed",
                document_id=document_id,
                chapter_number=chapter_number,
                href=chapter.href,
                error=str(exc),
            )
            report.chapters_failed.append(label)
            return False

        report.chapters_written.append(chapter_id)
        return True

    async def _write_markdown(
        self, chapter: ChapterLink, chapter_params: ChapterParams, metadata: Metadata
    ) -> None:
        href = chapter.props.md_href or chapter.href
        try:
            markdown = await with_timeout(
                lambda: self.source.fetch_markdown(href, chapter_params, metadata),
                self.timeout,
                f"Markdown timed out for {get_chapter_id(chapter_params)}",
            )
            write_chapter_content(
                chapter_params, self.output_dir, markdown, "md", document_title=metadata.title
            )
        except Exception as exc:
            logger.warning(
                "markdown failed",
                document_id=metadata.document_id,
                chapter_number=chapter_params.chapter_number,
                href=href,
                error=str(exc),
            )


def main(argv: Sequence[str] | None = None) -> None:  # pragma: no cover - convenience CLI
    from harvest.sources.html_article import HtmlArticleMarkdownSource, HtmlArticleSource

    settings = get_settings()
    parser = argparse.ArgumentParser(description="Checkpointed corpus crawler")
    parser.add_argument("--name", required=True, help="Crawler name, used in the checkpoint file name")
    parser.add_argument("--domain", required=True, help="Domain code, e.g. R")
    parser.add_argument("--sub-domain", required=True, help="Sub-domain code, e.g. C")
    parser.add_argument("--source", required=True, help="Crawl rows whose sourceURL starts with this prefix")
    parser.add_argument("--metadata-file", type=Path, default=settings.metadata_file)
    parser.add_argument("--output-dir", type=Path, default=settings.output_dir)
    parser.add_argument("--checkpoint-file", type=Path, default=None)
    parser.add_argument("--timeout", type=float, default=settings.task_timeout)
    parser.add_argument("--force-all", action="store_true", help="Recrawl completed documents too")
    parser.add_argument(
        "--force-id",
        action="append",
        default=[],
        help="Only crawl this document id (repeatable)",
    )
    parser.add_argument("--markdown", action="store_true", help="Also write a .md file per chapter")
    parser.add_argument("--log-level", default=settings.log_level)
    parser.add_argument("--log-file", type=Path, default=settings.log_file, help="Also append JSON log lines here")
    args = parser.parse_args(argv)

    configure_logging(args.log_level, args.log_file)
    prefix = args.source
    source_cls = HtmlArticleMarkdownSource if args.markdown else HtmlArticleSource

    crawler = Crawler(
        name=args.name,
        domain=args.domain,
        sub_domain=args.sub_domain,
        source=source_cls(settings=settings),
        get_metadata_by=lambda row: row.source_url.startswith(prefix),
        metadata_file_path=args.metadata_file,
        checkpoint_file_path=args.checkpoint_file,
        output_dir=args.output_dir,
        checkpoint_options=CheckpointOptions(force_all=args.force_all, force_checkpoint_ids=args.force_id),
        timeout=args.timeout,
    )
    report = asyncio.run(crawler.run())
    if report.documents_failed:
        for line in recent_problems():
            print(line, file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
