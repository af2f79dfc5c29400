from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Generator

import pytest
from typer.testing import CliRunner

from fraudwatch.config import get_settings
from fraudwatch.main import app

runner = CliRunner()

DEMO_USERS = 3


@pytest.fixture
def snapshot_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Point the CLI at a fresh memory snapshot file; restore root logging afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    path = tmp_path / "store.json"
    monkeypatch.setenv("STORE_BACKEND", "memory")
    monkeypatch.setenv("MEMORY_STORE_PATH", str(path))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("COMPOSITE_INDEXES", "")
    get_settings.cache_clear()
    yield path
    get_settings.cache_clear()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_info(snapshot_env: Path) -> None:
    result = runner.invoke(app, ["info"])

    assert result.exit_code == 0
    assert "memory snapshot=" in result.stdout


def test_seed_then_browse_json(snapshot_env: Path) -> None:
    seeded = runner.invoke(app, ["seed", "--users", str(DEMO_USERS)])
    assert seeded.exit_code == 0, seeded.output
    assert snapshot_env.exists()

    result = runner.invoke(app, ["transactions", "--json", "--page-size", "5"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["pagination"]["totalItems"] == DEMO_USERS * 4
    assert len(payload["data"]) == 5
    assert payload["error"] is None


def test_table_output(snapshot_env: Path) -> None:
    runner.invoke(app, ["seed", "--users", str(DEMO_USERS)])

    result = runner.invoke(app, ["users"])

    assert result.exit_code == 0
    assert "Page 1/1" in result.stdout


def test_invalid_sort_exits_with_usage_code(snapshot_env: Path) -> None:
    result = runner.invoke(app, ["users", "--sort-by", "pinHash"])

    assert result.exit_code == 2


def test_stats_json(snapshot_env: Path) -> None:
    runner.invoke(app, ["seed", "--users", str(DEMO_USERS)])

    result = runner.invoke(app, ["stats", "--json"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["totalUsers"] == DEMO_USERS
