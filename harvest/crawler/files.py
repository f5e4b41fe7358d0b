"""Corpus file layout and metadata table ingestion."""

from __future__ import annotations

import csv
import re
from pathlib import Path
from typing import Any, Callable, Mapping

import structlog

from harvest.core.ids import get_chapter_id, get_document_id
from harvest.core.schema import Metadata, MetadataRow, parse_metadata_row
from harvest.errors import PersistenceError

logger = structlog.get_logger(__name__)

_UNSAFE_PATH_CHARS = re.compile(r'[/\\?%*:|"<>]')


def sanitize_title(title: str) -> str:
    return _UNSAFE_PATH_CHARS.sub("_", title)


def chapter_path(
    params: Mapping[str, Any] | Any,
    base_dir: str | Path,
    extension: str,
    document_title: str | None = None,
) -> Path:
    """``<base>/<genre>/<documentId> (<title>)/<chapterId>.<ext>``."""

    genre = params["genre"] if isinstance(params, Mapping) else params.genre
    folder = get_document_id(params)
    if document_title:
        folder += f" ({sanitize_title(document_title)})"
    return Path(base_dir) / genre / folder / f"{get_chapter_id(params)}.{extension}"


def write_chapter_content(
    params: Mapping[str, Any] | Any,
    base_dir: str | Path,
    content: str,
    extension: str,
    document_title: str | None = None,
) -> Path:
    """Write one chapter file, creating its folders; raise ``PersistenceError``."""

    path = chapter_path(params, base_dir, extension, document_title)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"cannot write {path}: {exc}") from exc
    logger.info("chapter file written", path=str(path))
    return path


def walk_genre_dir(base_dir: str | Path, genre: str, extension: str | None = None) -> list[Path]:
    """Return every file below ``<base>/<genre>``, sorted."""

    genre_dir = Path(base_dir) / genre
    if not genre_dir.is_dir():
        return []
    files = [path for path in genre_dir.rglob("*") if path.is_file()]
    if extension:
        files = [path for path in files if path.suffix == f".{extension}"]
    return sorted(files)


def read_metadata_table(
    path: str | Path,
    predicate: Callable[[MetadataRow], bool] = lambda row: True,
) -> list[Metadata]:
    """Read the tab-separated metadata table.

    Quoting is disabled; rows that fail validation are logged and skipped.
    Only rows accepted by ``predicate`` are returned.
    """

    selected: list[Metadata] = []
    with open(path, encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle, delimiter="\t", quoting=csv.QUOTE_NONE)
        for line_number, row in enumerate(reader, start=2):
            row = {key: value for key, value in row.items() if key is not None and value is not None}
            result = parse_metadata_row(row)
            if not result.success:
                logger.error(
                    "metadata row invalid",
                    line=line_number,
                    document_id=row.get("documentId"),
                    error=str(result.error),
                )
                continue
            metadata_row = result.data
            if not predicate(metadata_row):
                continue
            try:
                selected.append(metadata_row.to_metadata())
            except ValueError as exc:
                logger.error(
                    "metadata row invalid",
                    line=line_number,
                    document_id=metadata_row.document_id,
                    error=str(exc),
                )
    return selected
