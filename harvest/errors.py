"""Error taxonomy shared by the harvester.

Errors are recovered at the smallest enclosing unit (chapter, then document,
then run); only a corrupt checkpoint file is allowed to stop a run.
"""

from __future__ import annotations

from typing import Any, Iterable


class HarvestError(Exception):
    """Base class for harvester failures."""


class ValidationError(HarvestError):
    """Schema or identity violation for a single unit of work."""

    def __init__(self, message: str, issues: Iterable[dict[str, Any]] | None = None) -> None:
        super().__init__(message)
        self.issues: list[dict[str, Any]] = list(issues or [])

    @classmethod
    def from_pydantic(cls, exc: Any, context: str = "") -> "ValidationError":
        """Build from a :class:`pydantic.ValidationError`."""

        issues = [
            {
                "loc": ".".join(str(part) for part in err.get("loc", ())),
                "msg": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        summary = "; ".join(f"{item['loc']}: {item['msg']}" for item in issues)
        prefix = f"{context}: " if context else ""
        return cls(f"{prefix}{summary or str(exc)}", issues)


class CollaboratorError(HarvestError):
    """An external collaborator (chapter discovery, page fetch) failed."""


class TaskTimeoutError(CollaboratorError, TimeoutError):
    """A collaborator call exceeded its deadline and was cancelled."""


class PersistenceError(HarvestError):
    """Checkpoint or output file I/O failed."""
