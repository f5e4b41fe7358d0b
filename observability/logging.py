"""Logging setup for crawler runs.

Every module logs through ``structlog.get_logger(__name__)``; events are
rendered as one JSON object per line and handed to the standard library
root logger. Besides the console, a run can append to a log file and always
keeps the most recent lines in memory so ``get_recent_logs(limit)`` can show
what a long crawl was doing without tailing files. Entries older than
``LOG_RETENTION_DAYS`` are ignored.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from datetime import datetime, timedelta
from functools import partial
from pathlib import Path
from typing import List

import structlog

get_logger = structlog.get_logger


_ring: deque[str] | None = None
_file_handlers: dict[Path, logging.Handler] = {}

LOG_RETENTION_DAYS = 7
_LINE_FORMAT = "%(asctime)s %(levelname)s %(message)s"
_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S,%f"


def _extract_timestamp(entry: str) -> datetime | None:
    """Parse the ``logging`` timestamp prefix of a buffered line."""

    try:
        date_part, time_part, *_ = entry.split(" ", 2)
    except ValueError:
        return None
    try:
        return datetime.strptime(f"{date_part} {time_part}", _TIMESTAMP_FORMAT)
    except ValueError:
        return None


class _RingBufferHandler(logging.Handler):
    def __init__(self, capacity: int = 2000) -> None:
        super().__init__()
        self.buffer: deque[str] = deque(maxlen=capacity)

    def emit(self, record: logging.LogRecord) -> None:  # noqa: D401
        try:
            msg = self.format(record)
        except Exception:  # pragma: no cover - best-effort formatting
            msg = record.getMessage()
        self.buffer.append(msg)


def _resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def _attach_file(path: Path) -> None:
    path = path.resolve()
    if path in _file_handlers:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    # the structlog renderer already produced a JSON line
    handler.setFormatter(logging.Formatter("%(message)s"))
    logging.getLogger().addHandler(handler)
    _file_handlers[path] = handler


def configure_logging(level: str | int = logging.INFO, log_file: str | Path | None = None) -> None:
    """Configure stdlib logging and structlog for a crawler run.

    ``level`` accepts a level name (``"debug"``) or number; unknown names fall
    back to INFO. ``log_file`` appends the JSON lines to that file as well.
    Repeated calls do not duplicate handlers.
    """

    level = _resolve_level(level)
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger().setLevel(level)

    global _ring
    if _ring is None:
        handler = _RingBufferHandler(capacity=2000)
        handler.setFormatter(logging.Formatter(_LINE_FORMAT))
        logging.getLogger().addHandler(handler)
        _ring = handler.buffer
    if log_file is not None:
        _attach_file(Path(log_file))

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(
                serializer=partial(json.dumps, ensure_ascii=False, default=str)
            ),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def get_recent_logs(limit: int = 200) -> List[str]:
    """Return up to ``limit`` buffered lines, oldest first."""

    if limit <= 0:
        return []
    buf = _ring or deque()
    cutoff = datetime.now() - timedelta(days=LOG_RETENTION_DAYS)
    selected: list[str] = []
    for entry in reversed(buf):
        ts = _extract_timestamp(entry)
        if ts is not None and ts < cutoff:
            continue
        selected.append(entry)
        if len(selected) >= limit:
            break
    return list(reversed(selected))
