"""Heuristic condition risk scoring.

Scores a fixed set of conditions from the most recent daily logs, the
current sensor snapshot and the cycle predictions.  These are heuristics
for prompting attention, not diagnoses.

Conditions are always emitted in this order:

    pain                    base 0.20, +0.15 short sleep, +0.10 low steps
    anemia                  base 0.05, +0.06 per heavy-flow or dark-color log
    pcos_like_irregularity  base 0.03, +0.12 when cycles average > 35 days
    pregnancy_window        0.06 with a fertile window, else 0.02
"""

from __future__ import annotations

import logging

from src.cycle_engine.base import ConditionRisk, DailyLog, SensorSnapshot
from src.cycle_engine.config_loader import CycleEngineConfig, get_engine_config

logger = logging.getLogger("nereid.cycle_engine.risk_scorer")

CONDITIONS = ("pain", "anemia", "pcos_like_irregularity", "pregnancy_window")

# Conditions that prompt action; the rest are monitoring-only
_ACTIONABLE = {"pain": True, "anemia": True, "pcos_like_irregularity": False, "pregnancy_window": True}


def _clamp(value: float) -> float:
    return round(min(max(value, 0.0), 1.0), 4)


class ConditionRiskScorer:
    """Score condition probabilities.

    Usage::

        scorer = ConditionRiskScorer()
        risks = scorer.score(recent_logs, snapshot, average_cycle_length_days=28,
                             has_fertile_window=True)
    """

    def __init__(self, config: CycleEngineConfig | None = None) -> None:
        self._config = config or get_engine_config()

    @property
    def window_logs(self) -> int:
        return self._config.risk.window_logs

    def score_pain(self, snapshot: SensorSnapshot) -> float:
        rc = self._config.risk
        probability = rc.pain_base
        if snapshot.sleep_hours < rc.pain_low_sleep_hours:
            probability += rc.pain_low_sleep_bump
        if snapshot.steps < rc.pain_low_steps:
            probability += rc.pain_low_steps_bump
        return _clamp(probability)

    def score_anemia(self, recent_logs: list[DailyLog]) -> float:
        rc = self._config.risk
        heavy = sum(1 for log in recent_logs[-rc.window_logs:] if log.is_heavy_or_dark)
        return _clamp(rc.anemia_base + rc.anemia_per_heavy_log * heavy)

    def score_pcos_like(self, average_cycle_length_days: int) -> float:
        rc = self._config.risk
        probability = rc.pcos_base
        if average_cycle_length_days > rc.pcos_long_cycle_days:
            probability += rc.pcos_long_cycle_bump
        return _clamp(probability)

    def score_pregnancy(self, has_fertile_window: bool) -> float:
        rc = self._config.risk
        return _clamp(rc.pregnancy_with_window if has_fertile_window else rc.pregnancy_without_window)

    def score(
        self,
        recent_logs: list[DailyLog],
        snapshot: SensorSnapshot,
        average_cycle_length_days: int,
        has_fertile_window: bool,
    ) -> list[ConditionRisk]:
        """Score every condition.

        Args:
            recent_logs:               Daily logs in ascending date order; only
                                       the last ``window_logs`` are considered.
            snapshot:                  Current sensor snapshot.
            average_cycle_length_days: Estimated average cycle length.
            has_fertile_window:        Whether a fertile window was predicted.

        Returns:
            One ConditionRisk per condition, in fixed order.
        """
        probabilities = {
            "pain": self.score_pain(snapshot),
            "anemia": self.score_anemia(recent_logs),
            "pcos_like_irregularity": self.score_pcos_like(average_cycle_length_days),
            "pregnancy_window": self.score_pregnancy(has_fertile_window),
        }
        logger.debug("Condition risks: %s", probabilities)
        return [
            ConditionRisk(
                condition=name,
                probability=probabilities[name],
                actionable=_ACTIONABLE[name],
            )
            for name in CONDITIONS
        ]
