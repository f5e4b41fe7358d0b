"""Harvester settings models."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Top level harvester settings loaded from ``.env``.

    Variables follow the ``HARVEST_`` prefix, e.g. ``HARVEST_OUTPUT_DIR`` or
    ``HARVEST_TASK_TIMEOUT``. The :class:`pydantic_settings.BaseSettings`
    machinery reads them when :func:`get_settings` is first called.
    """

    metadata_file: Path = Path("data/main.tsv")
    checkpoint_dir: Path = Path("dist")
    output_dir: Path = Path("dist/corpus")

    # Seconds allowed for one collaborator call (chapter discovery, page
    # content, markdown) before it is cancelled.
    task_timeout: float = Field(default=900.0, gt=0)
    request_timeout: float = Field(default=30.0, gt=0)
    fetch_retries: int = Field(default=5, ge=0)
    user_agent: str = "Mozilla/5.0 (compatible; corpus-harvest/0.1)"

    log_level: str = "INFO"
    log_file: Path | None = None

    model_config = ConfigDict(
        env_prefix="HARVEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def checkpoint_file(self, domain: str, sub_domain: str, name: str) -> Path:
        """Return the checkpoint path for one crawler."""

        return self.checkpoint_dir / f"{domain}{sub_domain}-{name}-checkpoint.json"


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Return cached harvester settings."""

    return Settings()
