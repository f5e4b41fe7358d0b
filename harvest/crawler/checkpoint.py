"""JSON-file checkpoint store for resumable crawls.

The file holds a list of ``{"id", "completed", "params"}`` records, one per
document. It is seeded once from the metadata table; afterwards only the
``completed`` flags change.
"""

from __future__ import annotations

import inspect
import json
import os
import tempfile
from functools import cmp_to_key
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from harvest.errors import PersistenceError

logger = structlog.get_logger(__name__)


class Checkpoint(BaseModel):
    id: str
    completed: bool = False
    params: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class CheckpointOptions(BaseModel):
    force_all: bool = False
    force_checkpoint_ids: list[str] = Field(default_factory=list)


InitialData = Callable[[], Union[Iterable[Any], Awaitable[Iterable[Any]]]]


def _params_of(item: Any) -> dict[str, Any]:
    if isinstance(item, BaseModel):
        return item.model_dump(mode="json", by_alias=True)
    return dict(item)


def _load(path: Path) -> list[Checkpoint]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PersistenceError(f"cannot read checkpoint file {path}: {exc}") from exc
    try:
        data = json.loads(raw or "[]")
    except json.JSONDecodeError as exc:
        raise PersistenceError(f"corrupt checkpoint file {path}: {exc}") from exc
    if not isinstance(data, list):
        raise PersistenceError(f"checkpoint file {path} must hold a JSON array")
    try:
        return [Checkpoint.model_validate(item) for item in data]
    except PydanticValidationError as exc:
        raise PersistenceError(f"invalid checkpoint entry in {path}: {exc}") from exc


def _dump(path: Path, checkpoints: list[Checkpoint]) -> None:
    payload = json.dumps(
        [item.model_dump(mode="json") for item in checkpoints],
        ensure_ascii=False,
        indent=2,
    )
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class CheckpointView:
    """Filtered, sorted view over the persisted checkpoints."""

    def __init__(self, path: Path, checkpoints: list[Checkpoint], filtered: list[Checkpoint]) -> None:
        self.path = path
        self._checkpoints = checkpoints
        self.filtered = filtered

    def all(self) -> list[Checkpoint]:
        return list(self._checkpoints)

    def completed_ids(self) -> set[str]:
        return {item.id for item in self._checkpoints if item.completed}

    def set_checkpoint_complete(self, checkpoint_id: str, completed: bool = True) -> None:
        """Flip one flag and rewrite the whole file before returning.

        Unknown ids and write failures are logged, not raised.
        """

        for item in self._checkpoints:
            if item.id == checkpoint_id:
                item.completed = completed
                break
        else:
            logger.error("checkpoint not found", checkpoint_id=checkpoint_id, path=str(self.path))
            return

        try:
            _dump(self.path, self._checkpoints)
        except OSError as exc:
            logger.error(
                "checkpoint write failed",
                checkpoint_id=checkpoint_id,
                path=str(self.path),
                error=str(exc),
            )
            return
        logger.info("checkpoint updated", checkpoint_id=checkpoint_id, completed=completed)


async def with_checkpoint(
    get_initial_data: InitialData,
    get_checkpoint_id: Callable[[Any], str],
    filter_checkpoint: Callable[[Checkpoint], bool] | None = None,
    sort_checkpoint: Callable[[Checkpoint, Checkpoint], int] | None = None,
    file_path: str | Path = Path("checkpoint.json"),
    options: CheckpointOptions | None = None,
) -> CheckpointView:
    """Open (or create and seed) the checkpoint file at ``file_path``.

    ``get_initial_data`` may be sync or async and is only called while the
    stored list is empty. The view holds everything when ``force_all`` is
    set, otherwise the ``force_checkpoint_ids`` items if any were given,
    otherwise the items accepted by ``filter_checkpoint`` (by default the
    incomplete ones).
    ``sort_checkpoint`` is a comparator applied to the view only.
    A corrupt file raises :class:`PersistenceError`.
    """

    path = Path(file_path)
    options = options or CheckpointOptions()

    if not path.exists():
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("[]", encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"cannot create checkpoint file {path}: {exc}") from exc

    checkpoints = _load(path)

    if not checkpoints:
        data = get_initial_data()
        if inspect.isawaitable(data):
            data = await data
        checkpoints = [
            Checkpoint(id=get_checkpoint_id(item), completed=False, params=_params_of(item))
            for item in data
        ]
        try:
            _dump(path, checkpoints)
        except OSError as exc:
            logger.error("checkpoint seed write failed", path=str(path), error=str(exc))
        logger.info("checkpoint seeded", path=str(path), count=len(checkpoints))

    if options.force_all:
        filtered = list(checkpoints)
    elif options.force_checkpoint_ids:
        wanted = set(options.force_checkpoint_ids)
        filtered = [item for item in checkpoints if item.id in wanted]
    elif filter_checkpoint is not None:
        filtered = [item for item in checkpoints if filter_checkpoint(item)]
    else:
        filtered = [item for item in checkpoints if not item.completed]

    if sort_checkpoint is not None:
        filtered = sorted(filtered, key=cmp_to_key(sort_checkpoint))

    return CheckpointView(path, checkpoints, filtered)
