"""Pytest configuration.

The repository uses a flat `src/` layout without an installed package. This conftest ensures tests
can import from the `src.*` namespace when running `pytest` locally, and provides the shared roster
fixture (reference date: Wednesday 2025-02-19).
"""

from __future__ import annotations

import itertools
import json
import sys
from datetime import date
from pathlib import Path

import pytest

# Ensure `import src...` works when running pytest without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from src.roster.adapter import InMemoryAdapter  # noqa: E402
from src.roster.models import Roster  # noqa: E402

ROSTER_FIXTURE_PATH = Path(__file__).resolve().parent / "fixtures" / "roster_fixture.json"
REFERENCE = date(2025, 2, 19)


def load_fixture_roster() -> Roster:
    return Roster.model_validate(json.loads(ROSTER_FIXTURE_PATH.read_text(encoding="utf-8")))


def make_adapter(roster: Roster, adapter_cls: type[InMemoryAdapter] = InMemoryAdapter) -> InMemoryAdapter:
    """In-memory adapter with predictable ids for created lessons (`new-1`, `new-2`, ...)."""

    counter = itertools.count(1)
    return adapter_cls(roster.persons, roster.lessons, id_factory=lambda: f"new-{next(counter)}")


@pytest.fixture
def roster() -> Roster:
    return load_fixture_roster()


@pytest.fixture
def adapter(roster: Roster) -> InMemoryAdapter:
    return make_adapter(roster)
