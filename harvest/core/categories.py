"""Closed category enumerations used by identifiers and metadata.

Each category carries a one-letter (or language) ``code``, an English
``category`` name and its ``vietnamese`` label as written in the metadata
table. Reserved genres exist in the table but may not be used in identifiers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

CategoryType = Literal["domain", "subDomain", "genre", "tag", "language"]


@dataclass(frozen=True)
class Category:
    code: str
    category: str
    vietnamese: str
    category_type: CategoryType
    is_reserved: bool = False


DOMAIN_CATEGORIES: tuple[Category, ...] = (
    Category("R", "religion", "Tôn giáo", "domain"),
    Category("L", "literature", "Văn học", "domain"),
    Category("H", "history", "Lịch sử", "domain"),
)

SUB_DOMAIN_CATEGORIES: tuple[Category, ...] = (
    Category("C", "catholic", "Công giáo", "subDomain"),
    Category("P", "protestant", "Tin Lành", "subDomain"),
    Category("B", "buddhism", "Phật giáo", "subDomain"),
    Category("G", "general", "Tổng quát", "subDomain"),
)

GENRE_CATEGORIES: tuple[Category, ...] = (
    Category("A", "article", "Bài viết", "genre"),
    Category("B", "book", "Sách", "genre"),
    Category("D", "document", "Văn kiện", "genre"),
    Category("H", "homily", "Bài giảng", "genre"),
    Category("L", "hagiography", "Hạnh các thánh", "genre"),
    Category("N", "new testament", "Tân Ước", "genre"),
    Category("O", "old testament", "Cựu Ước", "genre"),
    Category("P", "prayer", "Kinh nguyện", "genre"),
    Category("Q", "questions and answers", "Hỏi đáp", "genre"),
    Category("T", "theology", "Thần học", "genre"),
    Category("X", "unclassified", "Chưa phân loại", "genre", is_reserved=True),
)

TAG_CATEGORIES: tuple[Category, ...] = (
    Category("BIB", "bible", "Kinh Thánh", "tag"),
    Category("LIT", "liturgy", "Phụng vụ", "tag"),
    Category("CAT", "catechism", "Giáo lý", "tag"),
    Category("SPI", "spirituality", "Linh đạo", "tag"),
    Category("HIS", "history", "Lịch sử", "tag"),
    Category("MOR", "morality", "Luân lý", "tag"),
    Category("FAM", "family", "Gia đình", "tag"),
)

LANGUAGE_CATEGORIES: tuple[Category, ...] = (
    Category("vi", "vietnamese", "Tiếng Việt", "language"),
    Category("en", "english", "Tiếng Anh", "language"),
    Category("la", "latin", "Tiếng La-tinh", "language"),
    Category("fr", "french", "Tiếng Pháp", "language"),
    Category("el", "greek", "Tiếng Hy Lạp", "language"),
    Category("he", "hebrew", "Tiếng Do Thái", "language"),
    Category("zh", "chinese", "Tiếng Trung", "language"),
)

# Genres whose documents are scripture; reported separately in corpus stats.
SCRIPTURE_GENRES = frozenset({"N", "O"})

DOMAIN_CODES = frozenset(c.code for c in DOMAIN_CATEGORIES)
SUB_DOMAIN_CODES = frozenset(c.code for c in SUB_DOMAIN_CATEGORIES)
GENRE_CODES = frozenset(c.code for c in GENRE_CATEGORIES if not c.is_reserved)
LANGUAGE_CODES = frozenset(c.code for c in LANGUAGE_CATEGORIES)
LANGUAGE_LABELS = frozenset(c.vietnamese for c in LANGUAGE_CATEGORIES)


def find_genre(category: str) -> Category | None:
    """Return the non-reserved genre whose English name is ``category``."""

    for item in GENRE_CATEGORIES:
        if item.category == category and not item.is_reserved:
            return item
    return None


def find_tag(category: str) -> Category | None:
    for item in TAG_CATEGORIES:
        if item.category == category:
            return item
    return None
