from __future__ import annotations

import datetime as dt

import pytest

from match_store import MemoryStore
from run_config import PipelineSettings


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def settings() -> PipelineSettings:
    return PipelineSettings(call_delay=0, telemetry_delay=0, max_retries=0)


@pytest.fixture
def now() -> dt.datetime:
    return dt.datetime(2024, 5, 2, 12, 0, tzinfo=dt.timezone.utc)
