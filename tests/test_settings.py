from pathlib import Path

import pytest
from pydantic import ValidationError

from settings import Settings, get_settings


def test_defaults():
    settings = Settings()
    assert settings.task_timeout == 900.0
    assert settings.fetch_retries == 5
    assert settings.checkpoint_file("R", "C", "vatican") == Path("dist/RC-vatican-checkpoint.json")


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("HARVEST_OUTPUT_DIR", str(tmp_path / "corpus"))
    monkeypatch.setenv("harvest_fetch_retries", "2")
    settings = get_settings()
    assert settings.output_dir == tmp_path / "corpus"
    assert settings.fetch_retries == 2
    assert get_settings() is settings


def test_rejects_non_positive_timeout(monkeypatch):
    monkeypatch.setenv("HARVEST_TASK_TIMEOUT", "0")
    with pytest.raises(ValidationError):
        Settings()
