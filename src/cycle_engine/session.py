"""Per-user cycle state held by the owning application layer.

A ``CycleSession`` keeps the current history, logs, sensor snapshot and
goals for one user, applies mutations, and recomputes through the
``InferenceFacade`` after each one so the next read is never stale.
Mutation and recompute happen together under one lock, so a UI event and
a background sensor update can't interleave.

Server-originated predictions and goals (from the remote analysis service)
go through ``apply_remote_predictions`` / ``apply_remote_goals`` and are
stored as given, without local re-derivation, until the next local
mutation triggers a fresh recompute.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Iterable

from src.cycle_engine.base import CycleHistory, Goal, Predictions, SensorSnapshot, default_goals
from src.cycle_engine.inference import InferenceFacade, InferenceResult
from src.cycle_engine.normalizer import (
    NormalizationResult,
    normalize_day,
    normalize_goals,
    normalize_log_entry,
    normalize_period_starts,
    normalize_remote_predictions,
    normalize_snapshot,
    to_calendar_date,
)
from src.cycle_engine.recommendations import Recommendations

logger = logging.getLogger("nereid.cycle_engine.session")


class CycleSession:
    """Mutable per-user state around the pure inference engine.

    Usage::

        session = CycleSession()
        session.toggle_period_start(date(2025, 1, 31))
        session.save_log(date(2025, 1, 31), "flow", "heavy")
        session.update_snapshot({"steps": 4200, "sleep_hours": 5.5})
        session.predictions.next_period_start
    """

    def __init__(
        self,
        facade: InferenceFacade | None = None,
        history: CycleHistory | None = None,
        snapshot: SensorSnapshot | None = None,
        goals: list[Goal] | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._facade = facade or InferenceFacade()
        self._clock = clock
        self._lock = threading.Lock()
        self._history = history or CycleHistory()
        self._snapshot = snapshot or SensorSnapshot()
        self._goals = list(goals) if goals is not None else default_goals()
        self._result: InferenceResult
        with self._lock:
            self._recompute()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def history(self) -> CycleHistory:
        return self._history

    @property
    def snapshot(self) -> SensorSnapshot:
        return self._snapshot

    @property
    def predictions(self) -> Predictions:
        return self._result.predictions

    @property
    def goals(self) -> list[Goal]:
        return self._result.goals

    @property
    def recommendations(self) -> Recommendations:
        return self._result.recommendations

    @property
    def result(self) -> InferenceResult:
        return self._result

    # ------------------------------------------------------------------
    # Local mutations (each followed by a recompute)
    # ------------------------------------------------------------------

    def toggle_period_start(self, day: date | datetime | str) -> NormalizationResult[list[date]]:
        """Record ``day`` as a period start, or remove it if already recorded."""
        parsed = normalize_day(day)
        if not parsed.success:
            return parsed
        with self._lock:
            self._history = self._history.with_period_start_toggled(parsed.value)
            self._recompute()
            return NormalizationResult.ok(list(self._history.period_starts))

    def set_period_starts(self, days: Iterable[Any]) -> NormalizationResult[list[date]]:
        """Replace the recorded period starts (e.g. after loading from storage)."""
        parsed = normalize_period_starts(days)
        if not parsed.success:
            return parsed
        with self._lock:
            self._history = CycleHistory(period_starts=parsed.value, logs=dict(self._history.logs))
            self._recompute()
        return parsed

    def save_log(self, day: date | datetime | str, field_name: str, value: Any) -> NormalizationResult:
        """Set one field of the log for ``day``, leaving its other fields as they were."""
        parsed_day = normalize_day(day)
        if not parsed_day.success:
            return parsed_day
        entry = normalize_log_entry(field_name, value)
        if not entry.success:
            return entry
        with self._lock:
            self._history = self._history.with_log_entry(parsed_day.value, *entry.value)
            self._recompute()
            return NormalizationResult.ok(self._history.logs[parsed_day.value])

    def update_snapshot(self, readings: dict) -> NormalizationResult[SensorSnapshot]:
        """Replace the sensor snapshot wholesale with new readings."""
        parsed = normalize_snapshot(readings)
        if not parsed.success:
            return parsed
        with self._lock:
            self._snapshot = parsed.value
            self._recompute()
        return parsed

    def recompute(self) -> InferenceResult:
        """Force a recompute (safe to over-trigger)."""
        with self._lock:
            return self._recompute()

    # ------------------------------------------------------------------
    # Remote overrides (no local re-derivation)
    # ------------------------------------------------------------------

    def apply_remote_predictions(self, payload: dict) -> NormalizationResult[Predictions]:
        """Store server-computed predictions as-is."""
        parsed = normalize_remote_predictions(payload)
        if not parsed.success:
            return parsed
        with self._lock:
            self._result = replace(self._result, predictions=parsed.value)
        logger.info("Applied remote predictions (next period %s)", parsed.value.next_period_start)
        return parsed

    def apply_remote_goals(self, payload: Iterable[dict]) -> NormalizationResult[list[Goal]]:
        """Replace targets of known goals with server-supplied ones.

        Goals are matched by title; titles are never added or removed.
        """
        parsed = normalize_goals(payload)
        if not parsed.success:
            return parsed
        incoming = {g.title: g for g in parsed.value}
        with self._lock:
            known = {g.title for g in self._goals}
            for title in sorted(set(incoming) - known):
                logger.warning("Ignoring remote goal %r: not in this user's goal set", title)
            self._goals = [incoming.get(g.title, g) for g in self._goals]
            self._result = replace(self._result, goals=list(self._goals))
        return parsed

    # ------------------------------------------------------------------

    def _recompute(self) -> InferenceResult:
        # Caller holds self._lock
        self._result = self._facade.recompute(
            self._history,
            self._history.logs,
            self._snapshot,
            self._goals,
            today=to_calendar_date(self._clock()),
        )
        self._goals = list(self._result.goals)
        logger.info(
            "Recomputed predictions: %d period start(s), next period %s",
            len(self._history.period_starts),
            self._result.predictions.next_period_start,
        )
        return self._result
