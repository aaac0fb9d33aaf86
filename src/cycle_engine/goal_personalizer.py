"""Rule-based goal target personalization.

Two independent rules, either or both of which may fire:

- Two or more of the last 5 logs with heavy flow or dark-red color raise
  the Water target to a single 2400 ml threshold.
- Short sleep (< 6 h) together with high screen time (> 3 h) tightens the
  Screen Time target to the 0–2.0 h range.

Only targets change.  Goals that no rule touches, and every goal's
``current`` value, come back exactly as given.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from src.cycle_engine.base import DailyLog, Goal, GoalTarget, SensorSnapshot
from src.cycle_engine.config_loader import CycleEngineConfig, get_engine_config

logger = logging.getLogger("nereid.cycle_engine.goal_personalizer")

WATER = "Water"
SCREEN_TIME = "Screen Time"


class GoalPersonalizer:
    """Adjust goal targets from recent logs and the current snapshot."""

    def __init__(self, config: CycleEngineConfig | None = None) -> None:
        self._config = config or get_engine_config()

    def heavy_log_count(self, recent_logs: list[DailyLog]) -> int:
        window = self._config.goals.heavy_log_window
        return sum(1 for log in recent_logs[-window:] if log.is_heavy_or_dark)

    def needs_more_water(self, recent_logs: list[DailyLog]) -> bool:
        return self.heavy_log_count(recent_logs) >= self._config.goals.heavy_log_threshold

    def needs_less_screen(self, snapshot: SensorSnapshot) -> bool:
        gc = self._config.goals
        return snapshot.sleep_hours < gc.low_sleep_hours and snapshot.screen_time_hours > gc.high_screen_hours

    def personalize(
        self,
        goals: list[Goal],
        recent_logs: list[DailyLog],
        snapshot: SensorSnapshot,
    ) -> list[Goal]:
        """Return a new goal list with personalized targets.

        Args:
            goals:        Current goals; not modified.
            recent_logs:  Daily logs in ascending date order.
            snapshot:     Current sensor snapshot.

        Returns:
            Goals in the same order with the same titles.
        """
        gc = self._config.goals
        overrides: dict[str, GoalTarget] = {}
        if self.needs_more_water(recent_logs):
            overrides[WATER] = GoalTarget.single(gc.water_target_ml)
        if self.needs_less_screen(snapshot):
            overrides[SCREEN_TIME] = GoalTarget.between(*gc.screen_time_range)

        personalized: list[Goal] = []
        for goal in goals:
            target = overrides.get(goal.title)
            if target is not None and target != goal.target:
                logger.debug("Personalized %s target: %s → %s", goal.title, goal.target, target)
                personalized.append(replace(goal, target=target))
            else:
                personalized.append(replace(goal))
        return personalized
