"""Tests for boundary normalization of caller payloads."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from src.cycle_engine.base import (
    Coloration,
    FlowIntensity,
    GoalTarget,
    Mood,
    Nutrition,
    PhaseName,
    Regularity,
    SensorSnapshot,
)
from src.cycle_engine.normalizer import (
    normalize_daily_logs,
    normalize_day,
    normalize_goal_target,
    normalize_goals,
    normalize_log_entry,
    normalize_period_starts,
    normalize_remote_predictions,
    normalize_snapshot,
    to_calendar_date,
)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


class TestCalendarDates:
    def test_naive_datetime_drops_time(self) -> None:
        assert to_calendar_date(datetime(2025, 1, 31, 23, 59)) == date(2025, 1, 31)

    def test_aware_datetime_converted_to_utc_first(self) -> None:
        late_evening = datetime(2025, 1, 31, 22, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert to_calendar_date(late_evening) == date(2025, 2, 1)

    def test_iso_string_with_time(self) -> None:
        assert to_calendar_date("2025-01-31T08:15:00Z") == date(2025, 1, 31)

    def test_plain_date_passes_through(self) -> None:
        assert to_calendar_date(date(2025, 1, 31)) == date(2025, 1, 31)

    @pytest.mark.parametrize("value", ["2025-01-31", date(2025, 1, 31), datetime(2025, 1, 31, 6)])
    def test_normalize_day(self, value) -> None:
        result = normalize_day(value)
        assert result.success
        assert result.value == date(2025, 1, 31)

    @pytest.mark.parametrize("value", ["not-a-date", "2025-02-30", None])
    def test_normalize_day_rejects(self, value) -> None:
        result = normalize_day(value)
        assert not result.success
        assert result.value is None
        assert result.errors


class TestPeriodStarts:
    def test_sorted_and_distinct(self) -> None:
        result = normalize_period_starts(
            ["2025-01-31", date(2025, 1, 3), datetime(2025, 1, 31, 18, 30), "2024-12-06"]
        )
        assert result.success
        assert result.value == [date(2024, 12, 6), date(2025, 1, 3), date(2025, 1, 31)]
        assert result.warnings == ["Collapsed 1 duplicate period start(s)"]

    def test_any_bad_entry_rejects_all(self) -> None:
        result = normalize_period_starts(["2025-01-31", "garbage"])
        assert not result.success
        assert result.errors[0].startswith("period_starts[1]")

    def test_empty(self) -> None:
        result = normalize_period_starts([])
        assert result.success
        assert result.value == []


# ---------------------------------------------------------------------------
# Daily logs
# ---------------------------------------------------------------------------


class TestDailyLogs:
    def test_fixture_logs(self, cycle_data: dict) -> None:
        result = normalize_daily_logs(cycle_data["daily_logs"])
        assert result.success
        first = result.value[date(2025, 1, 31)]
        assert first.flow == FlowIntensity.heavy
        assert first.color == Coloration.dark_red
        assert result.value[date(2025, 2, 3)].nutrition == Nutrition.iron_rich

    def test_same_day_payloads_merge(self) -> None:
        result = normalize_daily_logs([
            {"day": "2025-02-01", "flow": "heavy", "mood": "low"},
            {"day": "2025-02-01T20:00:00", "mood": "calm"},
        ])
        assert result.success
        log = result.value[date(2025, 2, 1)]
        assert log.flow == FlowIntensity.heavy
        assert log.mood == Mood.calm

    @pytest.mark.parametrize(
        "payload",
        [
            {"day": "2025-02-01", "flow": "torrential"},
            {"day": "2025-02-01", "color": "dark_red"},
            {"day": "2025-02-01", "energy": "high"},
            {"flow": "heavy"},
        ],
    )
    def test_rejects_bad_payload(self, payload: dict) -> None:
        result = normalize_daily_logs([payload])
        assert not result.success
        assert all(e.startswith("logs[0]") for e in result.errors)


class TestLogEntry:
    def test_accepts_wire_value(self) -> None:
        result = normalize_log_entry("color", "darkRed")
        assert result.success
        assert result.value == ("color", Coloration.dark_red)

    def test_none_clears_field(self) -> None:
        assert normalize_log_entry("mood", None).value == ("mood", None)

    def test_unknown_field(self) -> None:
        result = normalize_log_entry("energy", "high")
        assert not result.success
        assert "unknown log field" in result.errors[0]

    def test_unknown_value_lists_allowed(self) -> None:
        result = normalize_log_entry("pain", "sharp")
        assert not result.success
        assert "crampy" in result.errors[0]


# ---------------------------------------------------------------------------
# Snapshot and goals
# ---------------------------------------------------------------------------


class TestSnapshot:
    def test_missing_readings_take_defaults(self) -> None:
        result = normalize_snapshot({"steps": 4200, "sleep_hours": 5.5})
        assert result.success
        assert result.value == SensorSnapshot(steps=4200, sleep_hours=5.5)

    @pytest.mark.parametrize(
        "readings",
        [
            {"steps": -1},
            {"sleep_hours": 25},
            {"screen_time_hours": -0.5},
            {"temperature_c": 50},
            {"resting_hr": 5},
            {"heart_rate_variability": 40},
        ],
    )
    def test_rejects_out_of_range(self, readings: dict) -> None:
        result = normalize_snapshot(readings)
        assert not result.success
        assert result.errors[0].startswith("snapshot.")


class TestGoals:
    def test_single_and_range_targets(self) -> None:
        assert normalize_goal_target({"value": 2400}).value == GoalTarget.single(2400)
        assert normalize_goal_target({"range": [0, 2]}).value == GoalTarget.between(0, 2)

    @pytest.mark.parametrize(
        "target",
        [{}, {"value": 1, "range": [0, 2]}, {"range": [3, 1]}, {"range": [-1, 2]}, {"value": -5}],
    )
    def test_rejects_bad_target(self, target: dict) -> None:
        assert not normalize_goal_target(target).success

    def test_goal_list(self) -> None:
        result = normalize_goals([
            {"title": "Water", "target": {"value": 2600}, "current": 900, "unit": "ml"},
            {"title": "Sleep", "target": {"range": [7.5, 9]}, "current": 6.8, "unit": "h"},
        ])
        assert result.success
        assert [g.title for g in result.value] == ["Water", "Sleep"]
        assert result.value[1].target == GoalTarget.between(7.5, 9)

    def test_rejects_unknown_title(self) -> None:
        result = normalize_goals([{"title": "Meditation", "target": {"value": 10}}])
        assert not result.success
        assert "unknown goal" in result.errors[0]


# ---------------------------------------------------------------------------
# Remote predictions
# ---------------------------------------------------------------------------


class TestRemotePredictions:
    def test_accepts_fixture(self, cycle_data: dict) -> None:
        result = normalize_remote_predictions(cycle_data["remote_predictions"])
        assert result.success
        p = result.value
        assert p.source == "remote"
        assert p.cycle_length_days == 29
        assert p.regularity == Regularity.regular
        assert [ph.name for ph in p.phases] == [
            PhaseName.menstrual, PhaseName.follicular, PhaseName.ovulatory, PhaseName.luteal
        ]
        assert p.fertile_window.days == 6
        assert p.conditions[0].probability == pytest.approx(0.3)

    def test_rejects_gap_between_phases(self, cycle_data: dict) -> None:
        payload = dict(cycle_data["remote_predictions"])
        phases = [dict(p) for p in payload["phases"]]
        phases[1].update(start_date="2025-02-06", duration=13)
        payload["phases"] = phases
        result = normalize_remote_predictions(payload)
        assert not result.success
        assert "not contiguous" in result.errors[0]

    def test_rejects_repeated_phase_names(self, cycle_data: dict) -> None:
        payload = dict(cycle_data["remote_predictions"])
        payload["phases"] = [dict(p, name="luteal") for p in payload["phases"]]
        result = normalize_remote_predictions(payload)
        assert not result.success
        assert "in order" in result.errors[0]

    def test_rejects_swapped_phase_order(self, cycle_data: dict) -> None:
        payload = dict(cycle_data["remote_predictions"])
        phases = [dict(p) for p in payload["phases"]]
        phases[1]["name"], phases[2]["name"] = "ovulatory", "follicular"
        payload["phases"] = phases
        assert not normalize_remote_predictions(payload).success

    def test_rejects_wrong_phase_count(self, cycle_data: dict) -> None:
        payload = dict(cycle_data["remote_predictions"], phases=cycle_data["remote_predictions"]["phases"][:3])
        assert not normalize_remote_predictions(payload).success

    def test_rejects_inconsistent_duration(self, cycle_data: dict) -> None:
        payload = dict(cycle_data["remote_predictions"])
        phases = [dict(p) for p in payload["phases"]]
        phases[0]["duration"] = 6
        payload["phases"] = phases
        assert not normalize_remote_predictions(payload).success

    def test_rejects_confidence_out_of_range(self, cycle_data: dict) -> None:
        payload = dict(cycle_data["remote_predictions"], confidence=1.4)
        result = normalize_remote_predictions(payload)
        assert not result.success
        assert result.errors[0].startswith("predictions.confidence")
