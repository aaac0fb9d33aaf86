"""Single entry point composing the cycle engine.

    history ──► CycleEstimator ──► PhasePredictor ──┬─► ConditionRiskScorer
                                                    ├─► GoalPersonalizer
                                                    └─► RecommendationBuilder

``recompute`` is a pure function of its inputs: it keeps no state between
calls, never mutates its arguments, and returns identical results for
identical inputs and reference date.  The owning layer calls it after
every change to history, logs or the sensor snapshot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from src.cycle_engine.base import CycleHistory, Goal, Predictions, SensorSnapshot
from src.cycle_engine.config_loader import CycleEngineConfig, get_engine_config
from src.cycle_engine.estimator import CycleEstimator
from src.cycle_engine.goal_personalizer import GoalPersonalizer
from src.cycle_engine.phase_predictor import PhasePredictor, ProjectedCycle
from src.cycle_engine.recommendations import RecommendationBuilder, Recommendations
from src.cycle_engine.risk_scorer import ConditionRiskScorer

logger = logging.getLogger("nereid.cycle_engine.inference")


@dataclass
class InferenceResult:
    """Everything the UI / backend layer reads after a recompute."""

    predictions: Predictions
    goals: list[Goal]
    recommendations: Recommendations = field(default_factory=Recommendations)

    def to_dict(self) -> dict:
        return {
            "predictions": self.predictions.to_dict(),
            "goals": [g.to_dict() for g in self.goals],
            "recommendations": self.recommendations.to_dict(),
        }


class InferenceFacade:
    """Run the full inference pipeline in one call.

    Usage::

        facade = InferenceFacade()
        result = facade.recompute(history, history.logs, SensorSnapshot(), default_goals())
        result.predictions.next_period_start
        result.goals
    """

    def __init__(self, config: CycleEngineConfig | None = None) -> None:
        self._config = config or get_engine_config()
        self.estimator = CycleEstimator(self._config)
        self.predictor = PhasePredictor(self._config)
        self.risk_scorer = ConditionRiskScorer(self._config)
        self.personalizer = GoalPersonalizer(self._config)
        self.recommender = RecommendationBuilder(self._config)

    def recompute(
        self,
        history: CycleHistory,
        daily_logs: dict,
        sensor_snapshot: SensorSnapshot,
        current_goals: list[Goal],
        today: date | None = None,
    ) -> InferenceResult:
        """Recompute predictions, goals and recommendations.

        Args:
            history:          Recorded period starts.
            daily_logs:       DailyLog per calendar date.
            sensor_snapshot:  Current sensor snapshot.
            current_goals:    Current goal list.
            today:            Reference date (defaults to today); only used for
                              the no-history placeholder and date-relative
                              recommendations.

        Returns:
            InferenceResult with the new predictions, personalized goals and
            recommendations.
        """
        today = today or date.today()
        recent = [daily_logs[d] for d in sorted(daily_logs)]

        estimate = self.estimator.estimate(history.period_starts)
        predictions = self.predictor.predict(
            estimate, max(history.period_starts, default=None), as_of_date=today
        )
        predictions.conditions = self.risk_scorer.score(
            recent[-self.risk_scorer.window_logs:],
            sensor_snapshot,
            average_cycle_length_days=estimate.average_cycle_length_days,
            has_fertile_window=predictions.fertile_window is not None,
        )
        goals = self.personalizer.personalize(current_goals, recent, sensor_snapshot)
        recommendations = self.recommender.build(predictions, goals, sensor_snapshot, today)

        logger.debug(
            "Recomputed: next period %s, length %d, confidence %.2f, %d goal(s)",
            predictions.next_period_start, predictions.cycle_length_days,
            predictions.confidence, len(goals),
        )
        return InferenceResult(predictions=predictions, goals=goals, recommendations=recommendations)

    def project(
        self, history: CycleHistory, days_ahead: int | None = None
    ) -> list[ProjectedCycle]:
        """Project upcoming cycles from history over ``days_ahead`` days."""
        estimate = self.estimator.estimate(history.period_starts)
        return self.predictor.project_cycles(
            estimate, max(history.period_starts, default=None), days_ahead
        )


def recompute(
    history: CycleHistory,
    daily_logs: dict,
    sensor_snapshot: SensorSnapshot,
    current_goals: list[Goal],
    today: date | None = None,
) -> InferenceResult:
    """Module-level shortcut using the global engine config."""
    return InferenceFacade().recompute(history, daily_logs, sensor_snapshot, current_goals, today)
