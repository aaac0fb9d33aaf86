"""Cycle phase calendar and next-period prediction.

Lays out the four phases (menstrual → follicular → ovulatory → luteal)
consecutively from the last recorded period start and predicts:
- Next period start (last start + average cycle length)
- Ovulation day (14 days before the next period)
- Fertile window (the 6 days ending on the ovulation day)

Phase durations follow a fixed policy rather than anything learned:

    menstrual   5 days
    follicular  round((cycle_length - 5) * 0.6), at least 1 day and capped so
                the luteal phase keeps its 1 day
    ovulatory   3 days
    luteal      whatever remains, at least 1 day

For cycles shorter than the sum of minimums (5 + 1 + 3 + 1 = 10 days) the
clamped phases still last one day each, so the laid-out calendar runs
longer than the nominal cycle length instead of producing an empty or
negative phase.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta

from src.cycle_engine.base import (
    PHASE_ORDER,
    CycleEstimate,
    CyclePhase,
    FertileWindow,
    PhaseName,
    Predictions,
)
from src.cycle_engine.config_loader import CycleEngineConfig, get_engine_config
from src.cycle_engine.estimator import round_half_up

logger = logging.getLogger("nereid.cycle_engine.phase_predictor")


@dataclass
class ProjectedCycle:
    """One upcoming cycle on the projection horizon.

    Attributes:
        start:        Predicted period start of this cycle.
        end:          Last day of this cycle (day before the following start).
        length_days:  Cycle length used.
        phases:       Phase calendar for this cycle.
        confidence:   Confidence inherited from the regularity class.
    """

    start: date
    end: date
    length_days: int
    phases: list[CyclePhase] = field(default_factory=list)
    confidence: float = 0.0


def check_phase_invariants(phases: list[CyclePhase], anchor: date) -> None:
    """Fail loudly if a phase calendar is malformed.

    These conditions cannot occur for valid input; a failure here is a bug.
    """
    assert len(phases) == 4, f"expected 4 phases, got {len(phases)}"
    assert phases[0].start_date == anchor, "phase calendar must start at the anchor date"
    for phase, expected_name in zip(phases, PHASE_ORDER):
        assert phase.name == expected_name, f"phase order broken at {phase.name}"
        assert phase.duration_days >= 1, f"{phase.name.value} has duration {phase.duration_days}"
        assert (phase.end_date - phase.start_date).days + 1 == phase.duration_days
    for current, following in zip(phases, phases[1:]):
        assert current.end_date + timedelta(days=1) == following.start_date, (
            f"gap or overlap between {current.name.value} and {following.name.value}"
        )


class PhasePredictor:
    """Build phase calendars and next-period forecasts.

    Usage::

        predictor = PhasePredictor()
        predictions = predictor.predict(estimate, last_period_start=date(2025, 1, 31))
        predictions.next_period_start     # date(2025, 2, 28)
        predictions.fertile_window        # 2025-02-09 .. 2025-02-14
    """

    def __init__(self, config: CycleEngineConfig | None = None) -> None:
        self._config = config or get_engine_config()

    def phase_durations(self, cycle_length: int) -> list[tuple[PhaseName, int]]:
        """Return (phase, duration) pairs for a cycle length."""
        pc = self._config.phases
        menstrual = pc.menstrual_days
        ovulatory = pc.ovulatory_days
        # Luteal keeps at least min_phase_days
        follicular_cap = cycle_length - menstrual - ovulatory - pc.min_phase_days
        follicular = max(
            pc.min_phase_days,
            min(round_half_up((cycle_length - menstrual) * pc.follicular_share), follicular_cap),
        )
        luteal = max(pc.min_phase_days, cycle_length - menstrual - follicular - ovulatory)
        return [
            (PhaseName.menstrual, menstrual),
            (PhaseName.follicular, follicular),
            (PhaseName.ovulatory, ovulatory),
            (PhaseName.luteal, luteal),
        ]

    def layout_phases(self, anchor: date, cycle_length: int) -> list[CyclePhase]:
        """Lay the four phases out back to back starting at ``anchor``."""
        if cycle_length < self._config.phases.minimum_cycle_days:
            logger.debug(
                "Cycle length %d is below the %d-day phase minimum; clamping",
                cycle_length, self._config.phases.minimum_cycle_days,
            )
        phases: list[CyclePhase] = []
        start = anchor
        for name, duration in self.phase_durations(cycle_length):
            end = start + timedelta(days=duration - 1)
            phases.append(
                CyclePhase(name=name, start_date=start, end_date=end, duration_days=duration)
            )
            start = end + timedelta(days=1)
        return phases

    def ovulation_day(self, next_period_start: date | None) -> date | None:
        if next_period_start is None:
            return None
        return next_period_start - timedelta(days=self._config.fertile_window.luteal_offset_days)

    def fertile_window(self, next_period_start: date | None) -> FertileWindow | None:
        """Return the fertile window ending on the ovulation day, or None."""
        ovulation = self.ovulation_day(next_period_start)
        if ovulation is None:
            return None
        start = ovulation - timedelta(days=self._config.fertile_window.window_days - 1)
        return FertileWindow(start=start, end=ovulation)

    def predict(
        self,
        estimate: CycleEstimate,
        last_period_start: date | None,
        as_of_date: date | None = None,
    ) -> Predictions:
        """Generate the phase calendar and forecast.

        Args:
            estimate:          Output of the cycle estimator.
            last_period_start: Most recent recorded period start, or None.
            as_of_date:        Reference date used only when there is no
                               history (defaults to today).

        Returns:
            Predictions without condition risks; those are added by the
            risk scorer.
        """
        cycle_length = estimate.average_cycle_length_days

        if last_period_start is None:
            # Best-effort placeholder laid out from today
            anchor = as_of_date or date.today()
            phases = self.layout_phases(anchor, cycle_length)
            check_phase_invariants(phases, anchor)
            logger.debug("No period history; placeholder phases laid out from %s", anchor)
            return Predictions(
                next_period_start=None,
                cycle_length_days=cycle_length,
                confidence=self._config.no_history_confidence,
                phases=phases,
                fertile_window=None,
                regularity=estimate.regularity,
                ovulation_date=None,
            )

        phases = self.layout_phases(last_period_start, cycle_length)
        check_phase_invariants(phases, last_period_start)
        next_start = last_period_start + timedelta(days=cycle_length)

        return Predictions(
            next_period_start=next_start,
            cycle_length_days=cycle_length,
            confidence=self._config.confidence_for(estimate.regularity.value),
            phases=phases,
            fertile_window=self.fertile_window(next_start),
            regularity=estimate.regularity,
            ovulation_date=self.ovulation_day(next_start),
        )

    def project_cycles(
        self,
        estimate: CycleEstimate,
        last_period_start: date | None,
        days_ahead: int | None = None,
    ) -> list[ProjectedCycle]:
        """Project upcoming cycles over a horizon.

        The first projected cycle starts at the predicted next period.
        Without any recorded period start nothing can be projected.

        Args:
            estimate:          Output of the cycle estimator.
            last_period_start: Most recent recorded period start, or None.
            days_ahead:        Horizon in days (defaults to the configured value).

        Returns:
            ceil(days_ahead / cycle_length) projected cycles, oldest first.
        """
        if last_period_start is None:
            return []
        horizon = self._config.default_days_ahead if days_ahead is None else days_ahead
        if horizon <= 0:
            return []

        length = estimate.average_cycle_length_days
        confidence = self._config.confidence_for(estimate.regularity.value)
        projected: list[ProjectedCycle] = []
        for i in range(1, math.ceil(horizon / length) + 1):
            start = last_period_start + timedelta(days=i * length)
            projected.append(
                ProjectedCycle(
                    start=start,
                    end=start + timedelta(days=length - 1),
                    length_days=length,
                    phases=self.layout_phases(start, length),
                    confidence=confidence,
                )
            )
        return projected

    @staticmethod
    def cycle_day_from_start(period_start: date, query_date: date) -> int:
        """Return the cycle day number for a given date.

        Day 1 = first day of period.  Returns zero or negative numbers for
        dates before the period start.
        """
        return (query_date - period_start).days + 1

    @staticmethod
    def phase_on(predictions: Predictions, query_date: date) -> PhaseName | None:
        """Return the phase containing ``query_date``, or None if outside the calendar."""
        phase = predictions.phase_for(query_date)
        return phase.name if phase else None

