"""Shared fixtures for cycle engine tests."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from src.cycle_engine.base import CycleHistory, DailyLog, SensorSnapshot
from src.cycle_engine.config_loader import CycleEngineConfig, load_engine_config
from src.cycle_engine.normalizer import normalize_daily_logs

# Fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Reference "today" for date-relative behavior
TEST_DATE = date(2025, 2, 10)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine_config() -> CycleEngineConfig:
    """Load the real bundled engine config for tests."""
    return load_engine_config()


# ---------------------------------------------------------------------------
# JSON fixture loaders
# ---------------------------------------------------------------------------


@pytest.fixture
def cycle_data() -> dict:
    return json.loads((FIXTURES_DIR / "cycle_history.json").read_text())


@pytest.fixture
def regular_history(cycle_data: dict) -> CycleHistory:
    return CycleHistory.from_dates(
        [date.fromisoformat(d) for d in cycle_data["regular_period_starts"]]
    )


@pytest.fixture
def irregular_history(cycle_data: dict) -> CycleHistory:
    return CycleHistory.from_dates(
        [date.fromisoformat(d) for d in cycle_data["irregular_period_starts"]]
    )


@pytest.fixture
def heavy_logs(cycle_data: dict) -> dict[date, DailyLog]:
    """Five days of logs, two of them heavy flow (one also dark red)."""
    result = normalize_daily_logs(cycle_data["daily_logs"])
    assert result.success, result.errors
    return result.value


# ---------------------------------------------------------------------------
# Sensor snapshots
# ---------------------------------------------------------------------------


@pytest.fixture
def default_snapshot() -> SensorSnapshot:
    """Baseline snapshot from the end-to-end scenario."""
    return SensorSnapshot(steps=6000, sleep_hours=7.0, screen_time_hours=2.0, temperature_c=36.6)


@pytest.fixture
def tired_snapshot() -> SensorSnapshot:
    """Short sleep, heavy screen use, few steps."""
    return SensorSnapshot(steps=2000, sleep_hours=5.0, screen_time_hours=4.5, temperature_c=36.8)
