"""Pytest configuration with basic asyncio support and corpus fixtures."""

import asyncio
import os

import pytest

from settings import get_settings


def pytest_configure(config):
    """Register the ``asyncio`` marker for asynchronous tests."""
    config.addinivalue_line(
        "markers", "asyncio: mark async test to run in event loop"
    )


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    """Run functions marked with ``asyncio`` in a new event loop."""
    if pyfuncitem.get_closest_marker("asyncio"):
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            funcargs = {
                name: pyfuncitem.funcargs[name]
                for name in pyfuncitem._fixtureinfo.argnames
            }
            loop.run_until_complete(pyfuncitem.obj(**funcargs))
        finally:
            loop.close()
            asyncio.set_event_loop(None)
        return True


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Keep ``HARVEST_*`` variables of the developer shell out of the tests."""
    for name in list(os.environ):
        if name.startswith("HARVEST_"):
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def metadata_payload():
    return {
        "documentId": "RCB_001",
        "documentNumber": 1,
        "genre": {"code": "B", "category": "book", "vietnamese": "Sách"},
        "tags": [{"category": "bible", "vietnamese": "Kinh Thánh"}],
        "title": "Sách Mẫu: Tập 1",
        "volume": "",
        "author": "Nhóm biên soạn",
        "sourceType": "web",
        "sourceURL": "https://example.org/book/1",
        "source": "example.org",
        "hasChapters": False,
        "period": "",
        "publishedTime": "01/02/2020",
        "language": "Tiếng Việt",
        "requiresManualCheck": True,
        "note": "",
    }


@pytest.fixture
def chapter_params():
    return {
        "domain": "R",
        "subDomain": "C",
        "genre": "B",
        "documentNumber": 1,
        "chapterNumber": 2,
        "chapterName": "Chương 2",
    }


@pytest.fixture
def pages_payload():
    return [
        {
            "id": "RCB_001.002.001",
            "number": 1,
            "sentences": [
                {
                    "id": "RCB_001.002.001.01",
                    "type": "single",
                    "text": "The quick brown fox jumps over the lazy dog.",
                    "footnotes": [
                        {
                            "label": "1",
                            "text": "A note about the fox.",
                            "position": 19,
                            "sentenceId": "RCB_001.002.001.01",
                        }
                    ],
                    "headings": [
                        {
                            "text": "Mở đầu",
                            "level": 2,
                            "order": 0,
                            "sentenceId": "RCB_001.002.001.01",
                        }
                    ],
                    "extraAttributes": {"verseNumber": 1},
                },
                {
                    "id": "RCB_001.002.001.02",
                    "type": "multiple",
                    "array": [
                        {
                            "languageCode": "vi",
                            "text": "Xin chào & tạm biệt",
                            "footnotes": [
                                {
                                    "label": "a",
                                    "text": "Ghi chú.",
                                    "position": 8,
                                    "sentenceId": "RCB_001.002.001.02",
                                }
                            ],
                        },
                        {"languageCode": "en", "text": "Hello <and> goodbye"},
                    ],
                },
            ],
        }
    ]
