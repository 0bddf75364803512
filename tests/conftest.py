import time
from pathlib import Path
from typing import Iterator

import pytest
import structlog

from quotaline.models import UsageSnapshot

# fixed "now" for deterministic freshness checks
NOW = 1_800_000_000.0


@pytest.fixture(autouse=True)
def _structlog_to_stdlib() -> "Iterator[None]":
    """
    routes structlog through stdlib logging without logger caching,
    so logs stay off stdout and capture_logs() works in every test.
    """
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture()
def utc_timezone(monkeypatch: "pytest.MonkeyPatch") -> "Iterator[None]":
    """
    pins the process local timezone to UTC for time formatting tests.
    """
    monkeypatch.setenv("TZ", "UTC")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.fixture()
def cache_path(tmp_path: "Path") -> "Path":
    return tmp_path / "quotaline" / "cache.json"


@pytest.fixture()
def fresh_snapshot() -> "UsageSnapshot":
    return UsageSnapshot(
        resets_at="2026-01-27T10:00:00Z",
        utilization=45.0,
        weekly_utilization=20.0,
        weekly_resets_at="2026-01-29T04:59:59Z",
        cached_at=int(NOW) - 10,
    )
