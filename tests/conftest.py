"""Pytest configuration for import paths and test isolation.

The workspace keeps the library under ``packages/`` and the shared database
library under ``libs/db/src``; both are put on ``sys.path`` so the tests run
against the working tree without an install.

The JSON-file queue store defaults to ``./.spend_sync`` under the current
directory. To keep tests hermetic, the queue directory is redirected to a
per-test temporary path, the retry-ceiling override is cleared, and cached
database engines are disposed after each test.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
# Local packages must precede any installed copies.
sys.path[:0] = [
    p
    for p in (str(_ROOT / "packages"), str(_ROOT / "libs" / "db" / "src"), str(_ROOT))
    if p not in sys.path
]


@pytest.fixture(autouse=True)
def _isolate_queue_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Force a per-test queue root so tests don't share on-disk state."""

    queue_root = tmp_path / "queue"
    queue_root.mkdir(parents=True, exist_ok=True)
    monkeypatch.setenv("SPEND_SYNC_QUEUE_DIR", os.fspath(queue_root))
    monkeypatch.delenv("SPEND_SYNC_MAX_RETRIES", raising=False)
    yield

    from db.client import dispose_engines

    dispose_engines()
