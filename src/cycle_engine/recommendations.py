"""Cycle insights, reminder schedule and UI emphasis.

Turns the structured predictions into the personalized material the app
surfaces around them:
- Short insight cards ("Irregular Cycle Pattern", "Sleep Optimization",
  "Increase Daily Activity", ...)
- A daily reminder schedule for the notification service to deliver
- Which tracking areas the UI should emphasise, and how urgently

Texts are fixed templates.  Free-form wording is left to the external text
generation service, which receives these structures as input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from src.cycle_engine.base import Goal, GoalTarget, Predictions, Regularity, SensorSnapshot
from src.cycle_engine.config_loader import CycleEngineConfig, get_engine_config
from src.cycle_engine.goal_personalizer import SCREEN_TIME

logger = logging.getLogger("nereid.cycle_engine.recommendations")

_IRREGULAR = {Regularity.irregular, Regularity.moderately_irregular}


@dataclass
class CycleInsight:
    """A single insight card.

    Attributes:
        kind:      'warning', 'recommendation' or 'info'.
        title:     Short title for display.
        message:   Full insight text.
        priority:  'high', 'medium' or 'low'.
    """

    kind: str
    title: str
    message: str
    priority: str


@dataclass
class ScheduledNotification:
    """A reminder for the delivery service; ``time`` is local HH:MM."""

    kind: str
    title: str
    message: str
    frequency: str
    time: str
    enabled: bool = True


@dataclass
class UIEmphasis:
    focus_areas: list[str] = field(default_factory=list)
    urgency_level: str = "normal"


@dataclass
class Recommendations:
    insights: list[CycleInsight] = field(default_factory=list)
    notifications: list[ScheduledNotification] = field(default_factory=list)
    ui: UIEmphasis = field(default_factory=UIEmphasis)

    def to_dict(self) -> dict:
        return {
            "insights": [vars(i) for i in self.insights],
            "notifications": [vars(n) for n in self.notifications],
            "ui": {"focus_areas": list(self.ui.focus_areas), "urgency_level": self.ui.urgency_level},
        }


class RecommendationBuilder:
    """Derive insights, notifications and UI emphasis from predictions."""

    def __init__(self, config: CycleEngineConfig | None = None) -> None:
        self._config = config or get_engine_config()

    def build(
        self,
        predictions: Predictions,
        goals: list[Goal],
        snapshot: SensorSnapshot,
        as_of_date: date | None = None,
    ) -> Recommendations:
        today = as_of_date or date.today()
        recommendations = Recommendations(
            insights=self.cycle_insights(predictions, snapshot, today),
            notifications=self.notification_schedule(predictions, goals, today),
            ui=self.ui_emphasis(predictions, snapshot),
        )
        logger.debug(
            "Built %d insight(s), %d notification(s), focus %s",
            len(recommendations.insights),
            len(recommendations.notifications),
            recommendations.ui.focus_areas,
        )
        return recommendations

    def cycle_insights(
        self, predictions: Predictions, snapshot: SensorSnapshot, today: date
    ) -> list[CycleInsight]:
        rc = self._config.recommendations
        insights: list[CycleInsight] = []

        if predictions.regularity in _IRREGULAR:
            insights.append(CycleInsight(
                kind="warning",
                title="Irregular Cycle Pattern",
                message=(
                    "Your cycle shows irregular patterns. Consider tracking additional "
                    "factors like stress, sleep, and nutrition."
                ),
                priority="high",
            ))

        if snapshot.sleep_hours < rc.sleep_target_hours:
            insights.append(CycleInsight(
                kind="recommendation",
                title="Sleep Optimization",
                message=(
                    "Your sleep duration is below recommended levels. This may impact "
                    "cycle regularity and overall health."
                ),
                priority="medium",
            ))

        if snapshot.steps < rc.steps_target:
            insights.append(CycleInsight(
                kind="recommendation",
                title="Increase Daily Activity",
                message=(
                    f"Aim for at least {rc.steps_target:,} steps daily to support hormonal "
                    "balance and overall health."
                ),
                priority="low",
            ))

        if predictions.next_period_start is None:
            insights.append(CycleInsight(
                kind="info",
                title="Limited Cycle History",
                message="Log your period start dates to unlock cycle predictions.",
                priority="low",
            ))
        else:
            days_until = (predictions.next_period_start - today).days
            if 0 <= days_until <= rc.period_soon_days:
                insights.append(CycleInsight(
                    kind="recommendation",
                    title="Period Expected Soon",
                    message=f"Your next period is expected in {days_until} day(s).",
                    priority="medium",
                ))

        return insights

    def notification_schedule(
        self, predictions: Predictions, goals: list[Goal], today: date
    ) -> list[ScheduledNotification]:
        notifications = [
            ScheduledNotification(
                kind="cycle_tracking",
                title="Track Your Cycle",
                message="Log your symptoms and observations for better predictions",
                frequency="daily",
                time="20:00",
            ),
            ScheduledNotification(
                kind="health_checkin",
                title="Health Check-in",
                message="How are you feeling today?",
                frequency="daily",
                time="09:00",
            ),
        ]

        window = predictions.fertile_window
        if window is not None and window.contains(today):
            notifications.append(ScheduledNotification(
                kind="fertile_window",
                title="Fertile Window",
                message="You are in your predicted fertile window.",
                frequency="once",
                time="09:00",
            ))

        tightened = GoalTarget.between(*self._config.goals.screen_time_range)
        if any(g.title == SCREEN_TIME and g.enabled and g.target == tightened for g in goals):
            notifications.append(ScheduledNotification(
                kind="screen_time",
                title="Wind Down",
                message="Put screens away to protect tonight's sleep.",
                frequency="daily",
                time="21:00",
            ))

        return notifications

    def ui_emphasis(self, predictions: Predictions, snapshot: SensorSnapshot) -> UIEmphasis:
        rc = self._config.recommendations
        focus: list[str] = []
        if predictions.regularity in _IRREGULAR:
            focus.append("cycle_tracking")
        if snapshot.sleep_hours < rc.sleep_target_hours:
            focus.append("sleep_tracking")
        if snapshot.steps < rc.steps_target:
            focus.append("activity_tracking")
        if any(
            risk.actionable and risk.probability >= rc.risk_focus_threshold
            for risk in predictions.conditions
        ):
            focus.append("symptom_tracking")

        urgency = "high" if "cycle_tracking" in focus else "normal"
        return UIEmphasis(focus_areas=focus, urgency_level=urgency)
