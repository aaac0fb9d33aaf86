"""Cycle length averaging and regularity classification.

Regularity is the coefficient of variation (population stddev / mean) of
the gaps between consecutive period starts, bucketed by the thresholds in
cycle_config.yaml.  With fewer than two period starts the estimator falls
back to the configured default length and ``unknown`` regularity.
"""

from __future__ import annotations

import logging
import math
import statistics
from datetime import date
from typing import Iterable

from src.cycle_engine.base import CycleEstimate, Regularity
from src.cycle_engine.config_loader import CycleEngineConfig, get_engine_config

logger = logging.getLogger("nereid.cycle_engine.estimator")


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return int(math.floor(value + 0.5))


def day_gaps(period_starts: Iterable[date]) -> list[int]:
    """Return day gaps between consecutive starts, in ascending date order."""
    ordered = sorted(period_starts)
    return [(later - earlier).days for earlier, later in zip(ordered, ordered[1:])]


class CycleEstimator:
    """Estimate average cycle length and regularity from period-start dates.

    Usage::

        estimate = CycleEstimator().estimate([date(2025, 1, 3), date(2025, 1, 31)])
        estimate.average_cycle_length_days   # 28
        estimate.regularity                  # Regularity.very_regular
    """

    def __init__(self, config: CycleEngineConfig | None = None) -> None:
        self._config = config or get_engine_config()

    def default_estimate(self) -> CycleEstimate:
        return CycleEstimate(
            average_cycle_length_days=self._config.estimator.default_cycle_length_days,
            regularity=Regularity.unknown,
        )

    def estimate(self, period_starts: Iterable[date]) -> CycleEstimate:
        """Estimate cycle statistics.

        Zero-length gaps (the same day recorded twice) are invalid and are
        dropped.  If dropping them leaves fewer than two gaps the default
        estimate is returned, so ``[a, a, b]`` falls back to the default while
        ``[a, b]`` estimates its single gap.  Input that went through
        ``normalize_period_starts`` or ``CycleHistory.from_dates`` is already
        distinct and never takes this path.

        Args:
            period_starts: Period-start dates in any order.

        Returns:
            CycleEstimate with the rounded mean gap and its regularity class.
        """
        raw_gaps = day_gaps(period_starts)
        if not raw_gaps:
            return self.default_estimate()

        gaps = [g for g in raw_gaps if g > 0]
        dropped = len(raw_gaps) - len(gaps)
        if dropped:
            logger.warning("Dropped %d zero-length cycle gap(s) from history", dropped)
            if len(gaps) < 2:
                return self.default_estimate()

        mean = statistics.fmean(gaps)
        cv = statistics.pstdev(gaps) / mean
        regularity = Regularity(self._config.regularity_for(cv))
        average = round_half_up(mean)

        logger.debug(
            "Estimated cycle length %d days from %d gaps (cv=%.3f, %s)",
            average, len(gaps), cv, regularity.value,
        )
        return CycleEstimate(
            average_cycle_length_days=average,
            regularity=regularity,
            gaps=gaps,
        )
