from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
ROOT = TESTS_DIR.parent
for extra in (TESTS_DIR, ROOT / "src"):
    path_str = str(extra)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)

from fixtures import RecordingRenderer, WorkspaceBuilder  # noqa: E402


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """Provide a helper bound to pytest's per-test tmp directory."""

    return WorkspaceBuilder(tmp_path)


@pytest.fixture
def logger() -> logging.Logger:
    """A quiet logger that still lets ``caplog`` observe records."""

    test_logger = logging.getLogger("docbatch.tests")
    test_logger.handlers.clear()
    test_logger.propagate = True
    test_logger.setLevel(logging.DEBUG)
    return test_logger


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()
