"""Ensure the project root is importable and provide shared fixtures."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest

os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="recall-logs-"))

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from engine.data.page_store import PageStore  # noqa: E402
from tests.helpers import FakeClock  # noqa: E402


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(tmp_path: Path, clock: FakeClock):
    page_store = PageStore(tmp_path / "pages.sqlite3", clock=clock)
    yield page_store
    page_store.close()
