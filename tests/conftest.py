"""Pytest configuration shared by the annotation tests.

``db.client`` keeps one process-wide engine bound to a single URL. Each test
that bootstraps its own SQLite file needs a fresh engine, so the shared engine
is disposed after every test.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import dispose_engine

from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _fresh_engine() -> Iterator[None]:
    yield
    dispose_engine()


@pytest.fixture
def registry_db(tmp_path: Path) -> str:
    """URL of an empty, schema-initialized SQLite registry database."""

    return bootstrap_sqlite_db(tmp_path / "registry.db")
