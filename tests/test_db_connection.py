"""Tests for roster database URL resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.db.connection import resolve_database_url


def test_explicit_url_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "postgresql://env/roster")
    assert resolve_database_url("postgresql://explicit/roster") == "postgresql://explicit/roster"


def test_falls_back_to_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_URL", "postgresql://env/roster")
    assert resolve_database_url() == "postgresql://env/roster"


def test_missing_url_is_a_clear_error(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError, match="DATABASE_URL is required"):
        resolve_database_url()
