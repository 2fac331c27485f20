"""Shared fixtures for CLI execution tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path

API_URL = "https://api.enapter.test"


@pytest.fixture()
def cli_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> dict[str, str]:
    """Point the CLI at a fake API with a test token and no stray .env file."""
    monkeypatch.chdir(tmp_path)
    for key in ("ENAPTER_API_VERSION", "ENAPTER_USER", "ENAPTER_OUTPUT_FORMAT"):
        monkeypatch.delenv(key, raising=False)
    env = {
        "ENAPTER_API_URL": API_URL,
        "ENAPTER_API_TOKEN": "test-token-123",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def query_file(tmp_path: Path) -> Path:
    path = tmp_path / "flow.yaml"
    path.write_text("telemetry:\n  - device: d1\n    attribute: h2_flow\n", encoding="utf-8")
    return path
