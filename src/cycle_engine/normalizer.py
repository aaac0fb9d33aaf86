"""Boundary normalization of caller input into engine types.

Everything that enters the engine from the outside (the UI layer, a sync
job, a remote analysis service) passes through here first.  Payloads are
validated with pydantic models and converted to the dataclasses in
``base``.  Validation problems never raise: every function returns a
``NormalizationResult`` whose ``errors`` list says what was rejected, so
the estimator and predictor only ever see well-formed values.

Dates are normalized to calendar days.  Timezone-aware datetimes are
converted to UTC before the time of day is dropped; naive datetimes simply
lose their time component.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Generic, Iterable, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from src.cycle_engine.base import (
    GOAL_TITLES,
    LOG_FIELDS,
    PHASE_ORDER,
    ConditionRisk,
    Coloration,
    CyclePhase,
    DailyLog,
    FertileWindow,
    FlowIntensity,
    Goal,
    GoalTarget,
    Mood,
    Nutrition,
    Pain,
    PhaseName,
    Predictions,
    Regularity,
    SensorSnapshot,
)

logger = logging.getLogger("nereid.cycle_engine.normalizer")

T = TypeVar("T")


@dataclass
class NormalizationResult(Generic[T]):
    """Outcome of normalizing one caller payload.

    Attributes:
        success:  True if the payload was accepted.
        value:    Normalized value; None when ``success`` is False.
        errors:   Reasons the payload was rejected.
        warnings: Non-fatal adjustments (e.g. duplicate dates collapsed).
    """

    success: bool
    value: T | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls, value: T, warnings: list[str] | None = None) -> NormalizationResult[T]:
        return cls(success=True, value=value, warnings=list(warnings or []))

    @classmethod
    def failed(cls, errors: list[str]) -> NormalizationResult[T]:
        logger.warning("Rejected input: %s", "; ".join(errors))
        return cls(success=False, errors=errors)


def to_calendar_date(value: Any) -> Any:
    """Strip the time of day from datetimes (UTC for aware ones); pass others through."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, str) and "T" in value:
        try:
            return to_calendar_date(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return value
    return value


def _flatten(exc: ValidationError, prefix: str = "") -> list[str]:
    errors = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"])
        where = f"{prefix}{loc}" if loc else prefix.rstrip(".") or "input"
        errors.append(f"{where}: {err['msg']}")
    return errors


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------


class _InputModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


class _CalendarDay(_InputModel):
    day: date

    @field_validator("day", mode="before")
    @classmethod
    def _strip_time(cls, v: Any) -> Any:
        return to_calendar_date(v)


class DailyLogIn(_CalendarDay):
    mood: Mood | None = None
    flow: FlowIntensity | None = None
    color: Coloration | None = None
    pain: Pain | None = None
    nutrition: Nutrition | None = None


class SensorSnapshotIn(_InputModel):
    steps: int = Field(default=0, ge=0)
    sleep_hours: float = Field(default=7.0, ge=0, le=24)
    screen_time_hours: float = Field(default=2.0, ge=0, le=24)
    temperature_c: float = Field(default=36.6, gt=30, lt=45)
    resting_hr: int | None = Field(default=None, ge=20, le=250)


class GoalTargetIn(_InputModel):
    value: float | None = Field(default=None, ge=0)
    range: tuple[float, float] | None = None

    @model_validator(mode="after")
    def _one_form(self) -> GoalTargetIn:
        if (self.value is None) == (self.range is None):
            raise ValueError("target needs exactly one of 'value' or 'range'")
        if self.range is not None:
            low, high = self.range
            if low < 0 or low > high:
                raise ValueError(f"range [{low}, {high}] must satisfy 0 <= low <= high")
        return self

    def to_target(self) -> GoalTarget:
        if self.range is not None:
            return GoalTarget.between(*self.range)
        return GoalTarget.single(self.value)


class GoalIn(_InputModel):
    title: str
    target: GoalTargetIn
    current: float = Field(default=0.0, ge=0)
    unit: str = ""
    enabled: bool = True

    @field_validator("title")
    @classmethod
    def _known_title(cls, v: str) -> str:
        if v not in GOAL_TITLES:
            raise ValueError(f"unknown goal {v!r}; expected one of {', '.join(GOAL_TITLES)}")
        return v


class CyclePhaseIn(_InputModel):
    name: PhaseName
    start_date: date
    end_date: date
    duration: int = Field(ge=1)

    @model_validator(mode="after")
    def _consistent(self) -> CyclePhaseIn:
        if (self.end_date - self.start_date).days + 1 != self.duration:
            raise ValueError(
                f"{self.name.value}: {self.start_date}..{self.end_date} is not {self.duration} day(s)"
            )
        return self


class FertileWindowIn(_InputModel):
    start: date
    end: date

    @model_validator(mode="after")
    def _ordered(self) -> FertileWindowIn:
        if self.end < self.start:
            raise ValueError("fertile window ends before it starts")
        return self


class ConditionRiskIn(_InputModel):
    condition: str = Field(min_length=1)
    probability: float = Field(ge=0.0, le=1.0)
    actionable: bool = False


class PredictionsIn(_InputModel):
    next_period_start: date | None = None
    cycle_length_days: int = Field(ge=1)
    confidence: float = Field(ge=0.0, le=1.0)
    regularity: Regularity = Regularity.unknown
    phases: list[CyclePhaseIn]
    fertile_window: FertileWindowIn | None = None
    ovulation_date: date | None = None
    conditions: list[ConditionRiskIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def _four_contiguous_phases(self) -> PredictionsIn:
        if len(self.phases) != 4:
            raise ValueError(f"expected 4 phases, got {len(self.phases)}")
        names = [p.name for p in self.phases]
        if names != list(PHASE_ORDER):
            raise ValueError(
                f"phases must be {', '.join(n.value for n in PHASE_ORDER)} in order, "
                f"got {', '.join(n.value for n in names)}"
            )
        for current, following in zip(self.phases, self.phases[1:]):
            if (following.start_date - current.end_date).days != 1:
                raise ValueError(
                    f"phases {current.name.value} and {following.name.value} are not contiguous"
                )
        return self


# ---------------------------------------------------------------------------
# Public normalization functions
# ---------------------------------------------------------------------------


def normalize_day(value: Any) -> NormalizationResult[date]:
    """Normalize one caller-supplied date, datetime or ISO string to a calendar day."""
    try:
        return NormalizationResult.ok(_CalendarDay(day=value).day)
    except ValidationError as exc:
        return NormalizationResult.failed(_flatten(exc))


def normalize_period_starts(raw: Iterable[Any]) -> NormalizationResult[list[date]]:
    """Normalize period-start dates into a sorted list of distinct days."""
    days: list[date] = []
    errors: list[str] = []
    for i, item in enumerate(raw):
        try:
            days.append(_CalendarDay(day=item).day)
        except ValidationError as exc:
            errors.extend(_flatten(exc, f"period_starts[{i}]."))
    if errors:
        return NormalizationResult.failed(errors)

    distinct = sorted(set(days))
    warnings = []
    if len(distinct) != len(days):
        warnings.append(f"Collapsed {len(days) - len(distinct)} duplicate period start(s)")
    return NormalizationResult.ok(distinct, warnings)


def normalize_daily_logs(raw: Iterable[dict]) -> NormalizationResult[dict[date, DailyLog]]:
    """Normalize daily log payloads keyed by calendar day.

    Several payloads for the same day are merged in order; a later payload
    overwrites only the fields it sets.
    """
    logs: dict[date, DailyLog] = {}
    errors: list[str] = []
    for i, item in enumerate(raw):
        try:
            parsed = DailyLogIn.model_validate(item)
        except ValidationError as exc:
            errors.extend(_flatten(exc, f"logs[{i}]."))
            continue
        log = logs.get(parsed.day) or DailyLog(day=parsed.day)
        for name in parsed.model_fields_set - {"day"}:
            log = log.with_entry(name, getattr(parsed, name))
        logs[parsed.day] = log
    if errors:
        return NormalizationResult.failed(errors)
    return NormalizationResult.ok(logs)


def normalize_log_entry(field_name: str, value: Any) -> NormalizationResult[tuple[str, Any]]:
    """Validate a single (field, value) log entry such as ``("color", "darkRed")``."""
    enum_cls = LOG_FIELDS.get(field_name)
    if enum_cls is None:
        return NormalizationResult.failed([f"unknown log field {field_name!r}"])
    if value is None:
        return NormalizationResult.ok((field_name, None))
    try:
        return NormalizationResult.ok((field_name, enum_cls(value)))
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        return NormalizationResult.failed(
            [f"{field_name}: {value!r} is not one of {allowed}"]
        )


def normalize_snapshot(raw: dict) -> NormalizationResult[SensorSnapshot]:
    """Normalize a sensor reading payload into a full replacement snapshot."""
    try:
        parsed = SensorSnapshotIn.model_validate(raw)
    except ValidationError as exc:
        return NormalizationResult.failed(_flatten(exc, "snapshot."))
    return NormalizationResult.ok(SensorSnapshot(**parsed.model_dump()))


def normalize_goal_target(raw: dict) -> NormalizationResult[GoalTarget]:
    try:
        parsed = GoalTargetIn.model_validate(raw)
    except ValidationError as exc:
        return NormalizationResult.failed(_flatten(exc, "target."))
    return NormalizationResult.ok(parsed.to_target())


def normalize_goals(raw: Iterable[dict]) -> NormalizationResult[list[Goal]]:
    """Normalize goal payloads (e.g. from the remote analysis service)."""
    goals: list[Goal] = []
    errors: list[str] = []
    for i, item in enumerate(raw):
        try:
            parsed = GoalIn.model_validate(item)
        except ValidationError as exc:
            errors.extend(_flatten(exc, f"goals[{i}]."))
            continue
        goals.append(Goal(
            title=parsed.title,
            target=parsed.target.to_target(),
            current=parsed.current,
            unit=parsed.unit,
            enabled=parsed.enabled,
        ))
    if errors:
        return NormalizationResult.failed(errors)
    return NormalizationResult.ok(goals)


def normalize_remote_predictions(raw: dict) -> NormalizationResult[Predictions]:
    """Normalize externally computed predictions without re-deriving them."""
    try:
        parsed = PredictionsIn.model_validate(raw)
    except ValidationError as exc:
        return NormalizationResult.failed(_flatten(exc, "predictions."))

    predictions = Predictions(
        next_period_start=parsed.next_period_start,
        cycle_length_days=parsed.cycle_length_days,
        confidence=parsed.confidence,
        phases=[
            CyclePhase(
                name=p.name,
                start_date=p.start_date,
                end_date=p.end_date,
                duration_days=p.duration,
            )
            for p in parsed.phases
        ],
        fertile_window=FertileWindow(start=parsed.fertile_window.start, end=parsed.fertile_window.end)
        if parsed.fertile_window
        else None,
        conditions=[
            ConditionRisk(condition=c.condition, probability=c.probability, actionable=c.actionable)
            for c in parsed.conditions
        ],
        regularity=parsed.regularity,
        ovulation_date=parsed.ovulation_date,
        source="remote",
    )
    return NormalizationResult.ok(predictions)
