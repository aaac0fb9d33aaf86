"""Canonical data models for the Nereid cycle inference engine.

Every component of the engine reads and returns these types.  They are
the single source of truth shared by the estimator, predictor, scorers,
the input normalizer and the owning application layer.

All models are plain values: engine functions never mutate the instances
they are given and return new ones instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Regularity(str, Enum):
    """Coarse classification of how consistent historical cycle lengths are."""

    very_regular = "very_regular"
    regular = "regular"
    moderately_irregular = "moderately_irregular"
    irregular = "irregular"
    unknown = "unknown"


class PhaseName(str, Enum):
    menstrual = "menstrual"
    follicular = "follicular"
    ovulatory = "ovulatory"
    luteal = "luteal"


PHASE_ORDER = (PhaseName.menstrual, PhaseName.follicular, PhaseName.ovulatory, PhaseName.luteal)


class Mood(str, Enum):
    calm = "calm"
    happy = "happy"
    low = "low"
    irritable = "irritable"
    anxious = "anxious"


class FlowIntensity(str, Enum):
    spotting = "spotting"
    light = "light"
    medium = "medium"
    heavy = "heavy"


class Coloration(str, Enum):
    bright_red = "brightRed"
    dark_red = "darkRed"
    brown = "brown"
    pink = "pink"


class Pain(str, Enum):
    none = "none"
    crampy = "crampy"
    backache = "backache"
    headache = "headache"
    pelvic = "pelvic"


class Nutrition(str, Enum):
    balanced = "balanced"
    iron_rich = "ironRich"
    low_appetite = "lowAppetite"
    high_carb = "highCarb"
    high_protein = "highProtein"


# Loggable DailyLog fields and the enum each one accepts
LOG_FIELDS: dict[str, type[Enum]] = {
    "mood": Mood,
    "flow": FlowIntensity,
    "color": Coloration,
    "pain": Pain,
    "nutrition": Nutrition,
}


# ---------------------------------------------------------------------------
# User-entered history
# ---------------------------------------------------------------------------


@dataclass
class DailyLog:
    """Symptom log for a single calendar day.

    Attributes:
        day:        Midnight-normalized calendar date this log belongs to.
        mood:       Logged mood.
        flow:       Menstrual flow intensity.
        color:      Observed flow coloration.
        pain:       Pain type.
        nutrition:  Nutrition tag.
    """

    day: date
    mood: Mood | None = None
    flow: FlowIntensity | None = None
    color: Coloration | None = None
    pain: Pain | None = None
    nutrition: Nutrition | None = None

    def with_entry(self, field_name: str, value: Enum | None) -> DailyLog:
        """Return a copy with one field overwritten; other fields are kept."""
        if field_name not in LOG_FIELDS:
            raise KeyError(f"Unknown log field: {field_name!r}")
        return replace(self, **{field_name: value})

    @property
    def is_heavy_or_dark(self) -> bool:
        return self.flow == FlowIntensity.heavy or self.color == Coloration.dark_red


@dataclass
class CycleHistory:
    """Recorded period-start dates and per-day symptom logs.

    ``period_starts`` is kept sorted ascending with no duplicate days.  Use
    ``from_dates`` when building from unordered input.

    Attributes:
        period_starts:  Distinct period-start dates, oldest first.
        logs:           DailyLog per date.
    """

    period_starts: list[date] = field(default_factory=list)
    logs: dict[date, DailyLog] = field(default_factory=dict)

    @classmethod
    def from_dates(
        cls, dates: list[date], logs: dict[date, DailyLog] | None = None
    ) -> CycleHistory:
        return cls(period_starts=sorted(set(dates)), logs=dict(logs or {}))

    def with_period_start_toggled(self, day: date) -> CycleHistory:
        """Add ``day`` as a period start, or remove it if already recorded."""
        starts = set(self.period_starts)
        if day in starts:
            starts.remove(day)
        else:
            starts.add(day)
        return CycleHistory(period_starts=sorted(starts), logs=dict(self.logs))

    def with_log_entry(self, day: date, field_name: str, value: Enum | None) -> CycleHistory:
        """Partially update the log for ``day``; other days and fields are kept."""
        current = self.logs.get(day) or DailyLog(day=day)
        logs = dict(self.logs)
        logs[day] = current.with_entry(field_name, value)
        return CycleHistory(period_starts=list(self.period_starts), logs=logs)


# ---------------------------------------------------------------------------
# Sensor readings
# ---------------------------------------------------------------------------


@dataclass
class SensorSnapshot:
    """Most recent already-cleaned readings.  Replaced wholesale on update.

    Attributes:
        steps:              Step count.
        sleep_hours:        Last night's sleep duration in hours.
        screen_time_hours:  Screen time today in hours.
        temperature_c:      Body temperature in °C.
        resting_hr:         Resting heart rate (bpm), if available.
    """

    steps: int = 0
    sleep_hours: float = 7.0
    screen_time_hours: float = 2.0
    temperature_c: float = 36.6
    resting_hr: int | None = None

    def to_dict(self) -> dict:
        return {
            "steps": self.steps,
            "sleep_hours": round(self.sleep_hours, 1),
            "screen_time_hours": round(self.screen_time_hours, 1),
            "temperature_c": round(self.temperature_c, 1),
            "resting_hr": self.resting_hr,
        }


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------


@dataclass
class GoalTarget:
    """Either a single threshold (``value``) or an inclusive ``low``–``high`` range."""

    value: float | None = None
    low: float | None = None
    high: float | None = None

    @classmethod
    def single(cls, value: float) -> GoalTarget:
        return cls(value=float(value))

    @classmethod
    def between(cls, low: float, high: float) -> GoalTarget:
        return cls(low=float(low), high=float(high))

    @property
    def is_range(self) -> bool:
        return self.value is None

    def to_dict(self) -> dict:
        if self.is_range:
            return {"range": [self.low, self.high]}
        return {"value": self.value}


@dataclass
class Goal:
    """A user goal.  ``title`` is the identity key within the fixed goal set."""

    title: str
    target: GoalTarget
    current: float
    unit: str
    enabled: bool = True

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "target": self.target.to_dict(),
            "current": self.current,
            "unit": self.unit,
            "enabled": self.enabled,
        }


GOAL_TITLES = ("Sleep", "Water", "Steps", "Screen Time", "Exercise")


def default_goals() -> list[Goal]:
    """The fixed goal set every user starts with."""
    return [
        Goal(title="Sleep", target=GoalTarget.between(7, 9), current=6.2, unit="h"),
        Goal(title="Water", target=GoalTarget.single(2000), current=1400, unit="ml"),
        Goal(title="Steps", target=GoalTarget.single(8000), current=5200, unit=""),
        Goal(title="Screen Time", target=GoalTarget.between(0, 2.5), current=3.8, unit="h"),
        Goal(title="Exercise", target=GoalTarget.single(30), current=12, unit="min"),
    ]


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


@dataclass
class CycleEstimate:
    """Output of the cycle estimator.

    Attributes:
        average_cycle_length_days: Rounded mean gap between period starts.
        regularity:                Regularity class from the gaps' CV.
        gaps:                      Gap lengths (days) the estimate was built from.
    """

    average_cycle_length_days: int
    regularity: Regularity
    gaps: list[int] = field(default_factory=list)


@dataclass
class CyclePhase:
    """One named sub-interval of a cycle; ``end_date`` is inclusive."""

    name: PhaseName
    start_date: date
    end_date: date
    duration_days: int

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def to_dict(self) -> dict:
        return {
            "name": self.name.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "duration": self.duration_days,
        }


@dataclass
class FertileWindow:
    """Inclusive date range considered most likely to be fertile."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass
class ConditionRisk:
    """Heuristic (not diagnostic) probability for one condition."""

    condition: str
    probability: float
    actionable: bool

    def to_dict(self) -> dict:
        return {
            "condition": self.condition,
            "probability": round(self.probability, 2),
            "actionable": self.actionable,
        }


@dataclass
class Predictions:
    """Cycle predictions derived from history, or supplied by a remote source.

    Attributes:
        next_period_start:  Predicted next period start; None without history.
        cycle_length_days:  Cycle length used for the phase layout.
        confidence:         0.0–1.0 heuristic confidence.
        phases:             Exactly four contiguous phases.
        fertile_window:     Predicted fertile window, if any.
        conditions:         Condition risks in fixed order.
        regularity:         Regularity class behind ``confidence``.
        ovulation_date:     Assumed ovulation day (last day of the fertile window).
        source:             'local' when computed here, 'remote' when supplied.
    """

    next_period_start: date | None
    cycle_length_days: int
    confidence: float
    phases: list[CyclePhase] = field(default_factory=list)
    fertile_window: FertileWindow | None = None
    conditions: list[ConditionRisk] = field(default_factory=list)
    regularity: Regularity = Regularity.unknown
    ovulation_date: date | None = None
    source: str = "local"

    def phase_for(self, day: date) -> CyclePhase | None:
        for phase in self.phases:
            if phase.contains(day):
                return phase
        return None

    def to_dict(self) -> dict:
        return {
            "next_period_start": self.next_period_start.isoformat()
            if self.next_period_start
            else None,
            "cycle_length_days": self.cycle_length_days,
            "confidence": round(self.confidence, 2),
            "regularity": self.regularity.value,
            "phases": [p.to_dict() for p in self.phases],
            "fertile_window": {
                "start": self.fertile_window.start.isoformat(),
                "end": self.fertile_window.end.isoformat(),
            }
            if self.fertile_window
            else None,
            "ovulation_date": self.ovulation_date.isoformat() if self.ovulation_date else None,
            "conditions": [c.to_dict() for c in self.conditions],
            "source": self.source,
        }
