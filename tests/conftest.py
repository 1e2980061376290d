"""Pytest configuration for test isolation.

Settings are read from ``STATEMENT_INSIGHTS_*`` environment variables (and a
developer's local ``.env`` may have exported some of them). Tests must not
depend on that ambient state, so an autouse fixture strips every such
variable before each test.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith("STATEMENT_INSIGHTS_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """File-backed SQLite URL so separate connections share state."""

    return f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}"
