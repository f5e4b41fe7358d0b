"""Corpus statistics over written JSON chapter trees."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

import structlog

from harvest.core.categories import SCRIPTURE_GENRES
from harvest.core.tree_schema import ChapterTree, TreeMultiSentence, parse_chapter_tree

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FileStats:
    path: Path
    genre: str
    pages: int
    sentences: int
    words: int


@dataclass
class Totals:
    files: int = 0
    pages: int = 0
    sentences: int = 0
    words: int = 0

    def add(self, item: FileStats) -> None:
        self.files += 1
        self.pages += item.pages
        self.sentences += item.sentences
        self.words += item.words

    @property
    def words_per_sentence(self) -> float:
        return self.words / self.sentences if self.sentences else 0.0


@dataclass
class CorpusStats:
    total: Totals = field(default_factory=Totals)
    scripture: Totals = field(default_factory=Totals)
    skipped: list[Path] = field(default_factory=list)

    def share(self, attribute: str) -> float:
        """Percentage of ``attribute`` (files, pages, ...) coming from scripture genres."""

        whole = getattr(self.total, attribute)
        return 100.0 * getattr(self.scripture, attribute) / whole if whole else 0.0


def tree_stats(tree: ChapterTree, path: Path, genre: str) -> FileStats:
    sentences = 0
    words = 0
    for sentence in tree.iter_sentences():
        sentences += 1
        # multi-language sentences count once and add no words
        if not isinstance(sentence, TreeMultiSentence):
            words += len(sentence.text.split())
    return FileStats(path=path, genre=genre, pages=len(tree.sect.pages), sentences=sentences, words=words)


def iter_tree_files(corpus_dir: str | Path) -> Iterable[tuple[Path, str]]:
    """Yield ``(path, genre)`` for every ``<genre>/<document>/*.json`` file."""

    base = Path(corpus_dir)
    if not base.is_dir():
        return
    for genre_dir in sorted(p for p in base.iterdir() if p.is_dir()):
        for path in sorted(genre_dir.glob("*/*.json")):
            yield path, genre_dir.name


def collect_stats(corpus_dir: str | Path) -> CorpusStats:
    stats = CorpusStats()
    for path, genre in iter_tree_files(corpus_dir):
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("tree unreadable", path=str(path), error=str(exc))
            stats.skipped.append(path)
            continue
        result = parse_chapter_tree(payload)
        if not result.success:
            logger.warning("tree invalid", path=str(path), error=str(result.error))
            stats.skipped.append(path)
            continue
        item = tree_stats(result.data, path, genre)
        stats.total.add(item)
        if genre in SCRIPTURE_GENRES:
            stats.scripture.add(item)
    return stats
