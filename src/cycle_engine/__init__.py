"""Nereid cycle inference engine.

This package infers menstrual-cycle phases and near-term predictions from
period-start history, daily symptom logs and the latest sensor readings,
then derives condition risks, goal targets and recommendations from them.
Everything here is synchronous, in-memory and side-effect free; storage,
HTTP and notification delivery belong to the host application.

Core modules:
    base: Canonical data models (history, logs, snapshot, goals, predictions)
    config_loader: Load/validate/hot-reload cycle_config.yaml
    estimator: Average cycle length and regularity
    phase_predictor: Phase calendar, next period, fertile window, projections
    risk_scorer: Heuristic condition probabilities
    goal_personalizer: Rule-based goal target adjustments
    recommendations: Insights, reminder schedule, UI emphasis
    normalizer: Boundary validation of caller payloads
    inference: InferenceFacade composing the pipeline
    session: Per-user state with recompute-on-mutation and remote overrides
"""

from src.cycle_engine.base import (
    CycleHistory,
    CyclePhase,
    DailyLog,
    Goal,
    GoalTarget,
    Predictions,
    SensorSnapshot,
    default_goals,
)
from src.cycle_engine.config_loader import CycleEngineConfig, get_engine_config
from src.cycle_engine.inference import InferenceFacade, InferenceResult, recompute
from src.cycle_engine.session import CycleSession

__all__ = [
    "CycleHistory",
    "CyclePhase",
    "DailyLog",
    "Goal",
    "GoalTarget",
    "Predictions",
    "SensorSnapshot",
    "default_goals",
    "CycleEngineConfig",
    "get_engine_config",
    "InferenceFacade",
    "InferenceResult",
    "recompute",
    "CycleSession",
]
