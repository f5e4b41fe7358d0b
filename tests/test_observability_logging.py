"""Tests for the logging setup and its in-memory ring buffer."""

from __future__ import annotations

import importlib
import json
import logging
from datetime import datetime, timedelta

import structlog


def _reload_logging_module():
    module = importlib.import_module("observability.logging")
    return importlib.reload(module)


def _ring_handler(module):
    for handler in logging.getLogger().handlers:
        if getattr(handler, "buffer", None) is module._ring:
            return handler
    raise AssertionError("ring buffer handler not configured")


def _record(message: str, when: datetime) -> logging.LogRecord:
    record = logging.LogRecord(
        name="harvest.crawler.run_crawl",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg=message,
        args=(),
        exc_info=None,
    )
    created = when.timestamp()
    record.created = created
    record.msecs = (created - int(created)) * 1000
    return record


def test_structlog_events_reach_the_ring_buffer_as_json():
    module = _reload_logging_module()
    module.configure_logging("info")
    _ring_handler(module).buffer.clear()

    structlog.get_logger("harvest.crawler.checkpoint").info(
        "checkpoint updated", checkpoint_id="RCB_001", completed=True
    )

    line = module.get_recent_logs(limit=1)[0]
    payload = json.loads(line.split(" ", 3)[3])
    assert payload["event"] == "checkpoint updated"
    assert payload["checkpoint_id"] == "RCB_001"
    assert payload["level"] == "info"


def test_unknown_level_name_falls_back_to_info():
    module = _reload_logging_module()
    module.configure_logging("chatty")
    assert logging.getLogger().level == logging.INFO


def test_get_recent_logs_drops_stale_entries_and_honours_limit():
    module = _reload_logging_module()
    module.configure_logging()
    handler = _ring_handler(module)
    handler.buffer.clear()

    now = datetime.now()
    handler.handle(_record("stale", now - timedelta(days=module.LOG_RETENTION_DAYS + 1)))
    for idx in range(3, -1, -1):
        handler.handle(_record(f"chapter-{idx}", now - timedelta(hours=idx)))

    result = module.get_recent_logs(limit=3)
    assert [line.rsplit(" ", 1)[-1] for line in result] == ["chapter-2", "chapter-1", "chapter-0"]
    assert all("stale" not in line for line in module.get_recent_logs(limit=10))
    assert module.get_recent_logs(limit=0) == []


def test_log_file_receives_json_lines_once(tmp_path):
    module = _reload_logging_module()
    path = tmp_path / "logs" / "scraping.log"
    module.configure_logging("info", log_file=path)
    module.configure_logging("info", log_file=path)

    structlog.get_logger("harvest.crawler.run_crawl").warning("chapter failed", chapter_number=3)
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = path.read_text(encoding="utf-8").splitlines()
    for handler in module._file_handlers.values():
        logging.getLogger().removeHandler(handler)
        handler.close()

    assert len(lines) == 1
    assert json.loads(lines[0])["chapter_number"] == 3
