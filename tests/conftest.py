from __future__ import annotations

import pytest

from ad_draft_sync.engine.instrumented import CountingStore
from ad_draft_sync.engine.manual import ManualTimerFactory


@pytest.fixture
def timers() -> ManualTimerFactory:
    """Virtual clock: debounced commits fire only when a test advances it."""

    return ManualTimerFactory()


@pytest.fixture
def store() -> CountingStore:
    return CountingStore()
