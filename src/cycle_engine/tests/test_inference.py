"""End-to-end tests for the InferenceFacade pipeline."""

from __future__ import annotations

import copy
from datetime import date

import pytest

from src.cycle_engine.base import (
    CycleHistory,
    GoalTarget,
    PhaseName,
    Regularity,
    SensorSnapshot,
    default_goals,
)
from src.cycle_engine.config_loader import CycleEngineConfig
from src.cycle_engine.inference import InferenceFacade, InferenceResult
from src.cycle_engine.tests.conftest import TEST_DATE


@pytest.fixture
def facade(engine_config: CycleEngineConfig) -> InferenceFacade:
    return InferenceFacade(engine_config)


@pytest.fixture
def two_starts() -> CycleHistory:
    return CycleHistory.from_dates([date(2025, 1, 3), date(2025, 1, 31)])


class TestRecompute:
    def test_two_starts_end_to_end(
        self, facade: InferenceFacade, two_starts: CycleHistory, default_snapshot: SensorSnapshot
    ) -> None:
        result = facade.recompute(two_starts, {}, default_snapshot, default_goals(), today=TEST_DATE)
        p = result.predictions

        assert p.cycle_length_days == 28
        assert p.regularity == Regularity.very_regular
        assert p.confidence == pytest.approx(0.95)
        assert p.next_period_start == date(2025, 2, 28)
        assert [(ph.name, ph.duration_days) for ph in p.phases] == [
            (PhaseName.menstrual, 5),
            (PhaseName.follicular, 14),
            (PhaseName.ovulatory, 3),
            (PhaseName.luteal, 6),
        ]
        assert p.phases[0].start_date == date(2025, 1, 31)
        assert p.phases[-1].end_date == date(2025, 2, 27)
        assert p.ovulation_date == date(2025, 2, 14)
        assert (p.fertile_window.start, p.fertile_window.end) == (date(2025, 2, 9), date(2025, 2, 14))
        assert [(c.condition, c.probability) for c in p.conditions] == [
            ("pain", pytest.approx(0.20)),
            ("anemia", pytest.approx(0.05)),
            ("pcos_like_irregularity", pytest.approx(0.03)),
            ("pregnancy_window", pytest.approx(0.06)),
        ]
        # No rule fires, goals come back unchanged
        assert result.goals == default_goals()

    def test_identical_inputs_give_identical_results(
        self, facade: InferenceFacade, regular_history: CycleHistory, heavy_logs, tired_snapshot
    ) -> None:
        first = facade.recompute(regular_history, heavy_logs, tired_snapshot, default_goals(), TEST_DATE)
        second = facade.recompute(regular_history, heavy_logs, tired_snapshot, default_goals(), TEST_DATE)
        assert first == second

    def test_inputs_are_not_mutated(
        self, facade: InferenceFacade, regular_history: CycleHistory, heavy_logs, tired_snapshot
    ) -> None:
        goals = default_goals()
        history_before = copy.deepcopy(regular_history)
        logs_before = copy.deepcopy(heavy_logs)
        facade.recompute(regular_history, heavy_logs, tired_snapshot, goals, TEST_DATE)
        assert regular_history == history_before
        assert heavy_logs == logs_before
        assert goals == default_goals()

    def test_logs_drive_goals_and_risks(
        self, facade: InferenceFacade, regular_history: CycleHistory, heavy_logs, tired_snapshot
    ) -> None:
        result = facade.recompute(regular_history, heavy_logs, tired_snapshot, default_goals(), TEST_DATE)
        goals = {g.title: g for g in result.goals}
        risks = {c.condition: c.probability for c in result.predictions.conditions}

        assert goals["Water"].target == GoalTarget.single(2400)
        assert goals["Screen Time"].target == GoalTarget.between(0, 2.0)
        assert risks["anemia"] == pytest.approx(0.17)
        assert risks["pain"] == pytest.approx(0.45)

    def test_irregular_history(
        self, facade: InferenceFacade, irregular_history: CycleHistory, default_snapshot
    ) -> None:
        result = facade.recompute(irregular_history, {}, default_snapshot, default_goals(), TEST_DATE)
        p = result.predictions
        assert p.cycle_length_days == 40
        assert p.regularity == Regularity.irregular
        assert p.confidence == pytest.approx(0.55)
        assert p.next_period_start == date(2025, 1, 28)
        risks = {c.condition: c.probability for c in p.conditions}
        assert risks["pcos_like_irregularity"] == pytest.approx(0.15)

    def test_no_history_placeholder(self, facade: InferenceFacade, default_snapshot) -> None:
        result = facade.recompute(CycleHistory(), {}, default_snapshot, default_goals(), TEST_DATE)
        p = result.predictions
        assert p.next_period_start is None
        assert p.fertile_window is None
        assert p.ovulation_date is None
        assert p.confidence == pytest.approx(0.10)
        assert p.regularity == Regularity.unknown
        assert p.phases[0].start_date == TEST_DATE
        risks = {c.condition: c.probability for c in p.conditions}
        assert risks["pregnancy_window"] == pytest.approx(0.02)

    def test_unordered_log_mapping(
        self, facade: InferenceFacade, regular_history: CycleHistory, heavy_logs, default_snapshot
    ) -> None:
        shuffled = dict(reversed(list(heavy_logs.items())))
        ordered = facade.recompute(regular_history, heavy_logs, default_snapshot, default_goals(), TEST_DATE)
        unordered = facade.recompute(regular_history, shuffled, default_snapshot, default_goals(), TEST_DATE)
        assert ordered == unordered


class TestProject:
    def test_projects_from_history(self, facade: InferenceFacade, two_starts: CycleHistory) -> None:
        cycles = facade.project(two_starts, days_ahead=56)
        assert [c.start for c in cycles] == [date(2025, 2, 28), date(2025, 3, 28)]
        assert all(c.confidence == pytest.approx(0.95) for c in cycles)

    def test_empty_history(self, facade: InferenceFacade) -> None:
        assert facade.project(CycleHistory()) == []


class TestSerialization:
    def test_to_dict(
        self, facade: InferenceFacade, two_starts: CycleHistory, default_snapshot: SensorSnapshot
    ) -> None:
        result = facade.recompute(two_starts, {}, default_snapshot, default_goals(), today=TEST_DATE)
        assert isinstance(result, InferenceResult)
        data = result.to_dict()
        assert set(data) == {"predictions", "goals", "recommendations"}
        assert data["predictions"]["next_period_start"] == "2025-02-28"
        assert len(data["predictions"]["phases"]) == 4
        assert [g["title"] for g in data["goals"]] == ["Sleep", "Water", "Steps", "Screen Time", "Exercise"]
