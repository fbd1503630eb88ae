"""Test harness configuration.

This repo uses a `src/` layout. Make sure tests import the in-repo code even
when an older `media_router` is installed in the environment.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

DEFAULT_TEST_TIMEOUT_SECONDS = 30


def pytest_configure() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    src_path = str(repo_root / "src")
    if sys.path[:1] != [src_path] and src_path not in sys.path:
        sys.path.insert(0, src_path)


def pytest_collection_modifyitems(
    session: pytest.Session, config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Apply a default per-test timeout (enforced by `pytest-timeout`)."""
    _ = session, config
    for item in items:
        item.add_marker(pytest.mark.timeout(DEFAULT_TEST_TIMEOUT_SECONDS))


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
