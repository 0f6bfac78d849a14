"""Shared pytest fixtures for all tests."""

from __future__ import annotations

from collections.abc import Generator

import pytest

import bizval.server as server_module
from bizval.engine import ValuationEngine
from bizval.history import HistoryTracker


@pytest.fixture(autouse=True)
def isolated_engine() -> Generator[ValuationEngine]:
    """Replace the server's module-level engine with one holding a fresh history.

    Prevents recorded valuations from leaking between tests.
    """
    original = server_module.engine
    engine = ValuationEngine(history=HistoryTracker())
    server_module.engine = engine
    yield engine
    server_module.engine = original
