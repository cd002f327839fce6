"""Pytest fixtures for shared test state."""

from __future__ import annotations

import sys

import pytest

from simplemock import config, registry, snapshot


@pytest.fixture(autouse=True)
def _reset_mock_state(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global configuration and the context table between tests."""
    for name in ("SIMPLEMOCK_RESCAN", "SIMPLEMOCK_SNAPSHOT_ARGS", "SIMPLEMOCK_EXCLUDED_MODULES"):
        monkeypatch.delenv(name, raising=False)
    config.reset_configuration()
    registry.clear_registry()
    snapshot.clear_warnings()
    profiler = sys.getprofile()
    yield
    assert sys.getprofile() is profiler
    config.reset_configuration()
    registry.clear_registry()
    snapshot.clear_warnings()
