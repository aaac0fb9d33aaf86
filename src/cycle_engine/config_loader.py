"""Load, validate, and hot-reload the Nereid cycle engine configuration.

The config lives in ``cycle_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_engine_config()`` to re-read from
disk after an admin update without a restart.

Usage::

    from src.cycle_engine.config_loader import get_engine_config

    config = get_engine_config()
    config.confidence_for("regular")        # 0.85
    config.phases.menstrual_days            # 5
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger("nereid.cycle_engine.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "cycle_config.yaml"

REGULARITY_LEVELS = ("very_regular", "regular", "moderately_irregular", "irregular", "unknown")


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class EstimatorConfig:
    """Cycle length averaging and regularity classification settings."""

    default_cycle_length_days: int
    very_regular_cv: float
    regular_cv: float
    moderately_irregular_cv: float


@dataclass
class PhaseConfig:
    """Fixed phase-duration policy."""

    menstrual_days: int
    follicular_share: float
    ovulatory_days: int
    min_phase_days: int = 1

    @property
    def minimum_cycle_days(self) -> int:
        # menstrual + follicular + ovulatory + luteal with both clamped phases at their minimum
        return self.menstrual_days + self.ovulatory_days + 2 * self.min_phase_days


@dataclass
class FertileWindowConfig:
    """Fertile window sizing."""

    window_days: int = 6
    luteal_offset_days: int = 14


@dataclass
class RiskConfig:
    """Heuristic constants for the condition risk scorer.

    These are heuristics, not diagnostic thresholds.
    """

    window_logs: int
    pain_base: float
    pain_low_sleep_hours: float
    pain_low_sleep_bump: float
    pain_low_steps: int
    pain_low_steps_bump: float
    anemia_base: float
    anemia_per_heavy_log: float
    pcos_base: float
    pcos_long_cycle_days: int
    pcos_long_cycle_bump: float
    pregnancy_with_window: float
    pregnancy_without_window: float


@dataclass
class GoalRulesConfig:
    """Goal personalization rule settings."""

    heavy_log_window: int
    heavy_log_threshold: int
    water_target_ml: float
    low_sleep_hours: float
    high_screen_hours: float
    screen_time_range: tuple[float, float]


@dataclass
class RecommendationConfig:
    """Thresholds for insights, notifications and UI emphasis."""

    sleep_target_hours: float = 7.0
    steps_target: int = 8000
    period_soon_days: int = 3
    risk_focus_threshold: float = 0.30


@dataclass
class CycleEngineConfig:
    """Complete, validated cycle engine configuration.

    This is the single in-memory representation of cycle_config.yaml.
    The estimator, predictor, scorer and personalizer all read from this
    object.

    Attributes:
        version:          Config schema version string.
        estimator:        Cycle length / regularity settings.
        phases:           Phase-duration policy.
        fertile_window:   Fertile window sizing.
        confidence:       Regularity → confidence lookup.
        no_history_confidence: Confidence used when no period start is known.
        risk:             Condition risk heuristics.
        goals:            Goal personalization rules.
        recommendations:  Insight / notification / UI thresholds.
        default_days_ahead: Horizon for cycle projection.
    """

    version: str
    estimator: EstimatorConfig
    phases: PhaseConfig
    fertile_window: FertileWindowConfig
    confidence: dict[str, float]
    no_history_confidence: float
    risk: RiskConfig
    goals: GoalRulesConfig
    recommendations: RecommendationConfig
    default_days_ahead: int = 90
    _raw: dict = field(default_factory=dict, repr=False)

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    def confidence_for(self, regularity: str) -> float:
        """Return the prediction confidence for a regularity class.

        Unrecognised classes fall back to the ``unknown`` entry.
        """
        return self.confidence.get(regularity, self.confidence["unknown"])

    def regularity_for(self, coefficient_of_variation: float) -> str:
        """Classify a coefficient of variation into a regularity class."""
        est = self.estimator
        if coefficient_of_variation < est.very_regular_cv:
            return "very_regular"
        if coefficient_of_variation < est.regular_cv:
            return "regular"
        if coefficient_of_variation < est.moderately_irregular_cv:
            return "moderately_irregular"
        return "irregular"


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when cycle_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    try:
        import yaml  # pyyaml
    except ImportError as exc:
        raise ImportError(
            "pyyaml is required for config loading. Install with: pip install pyyaml"
        ) from exc

    if not path.exists():
        raise FileNotFoundError(f"Cycle engine config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> CycleEngineConfig:
    """Validate the raw YAML dict and construct a CycleEngineConfig.

    Applies defaults for missing optional fields and collects every problem
    before raising, so one bad edit reports all of its errors at once.

    Args:
        raw: Parsed YAML dict.

    Returns:
        Validated CycleEngineConfig instance.

    Raises:
        ConfigValidationError: If any field is missing or invalid.
    """
    errors: list[str] = []

    def _num(section: dict, key: str, default: Any, path: str, cast=float) -> Any:
        value = section.get(key, default)
        try:
            return cast(value)
        except (TypeError, ValueError):
            errors.append(f"{path}.{key} must be a number, got {value!r}")
            return cast(default)

    def _probability(value: float, path: str) -> None:
        if not (0.0 <= value <= 1.0):
            errors.append(f"{path} = {value} is out of range [0.0, 1.0]")

    version = str(raw.get("version", "1.0"))

    # ── Estimator ──
    est_raw = raw.get("estimator") or {}
    thr_raw = est_raw.get("regularity_thresholds") or {}
    estimator = EstimatorConfig(
        default_cycle_length_days=_num(est_raw, "default_cycle_length_days", 28, "estimator", int),
        very_regular_cv=_num(thr_raw, "very_regular", 0.10, "estimator.regularity_thresholds"),
        regular_cv=_num(thr_raw, "regular", 0.20, "estimator.regularity_thresholds"),
        moderately_irregular_cv=_num(
            thr_raw, "moderately_irregular", 0.30, "estimator.regularity_thresholds"
        ),
    )
    if not (estimator.very_regular_cv < estimator.regular_cv < estimator.moderately_irregular_cv):
        errors.append("estimator.regularity_thresholds must be strictly increasing")
    if estimator.default_cycle_length_days <= 0:
        errors.append("estimator.default_cycle_length_days must be positive")

    # ── Phases ──
    ph_raw = raw.get("phases") or {}
    phases = PhaseConfig(
        menstrual_days=_num(ph_raw, "menstrual_days", 5, "phases", int),
        follicular_share=_num(ph_raw, "follicular_share", 0.6, "phases"),
        ovulatory_days=_num(ph_raw, "ovulatory_days", 3, "phases", int),
        min_phase_days=_num(ph_raw, "min_phase_days", 1, "phases", int),
    )
    for name in ("menstrual_days", "ovulatory_days", "min_phase_days"):
        if getattr(phases, name) < 1:
            errors.append(f"phases.{name} must be at least 1")
    if not (0.0 < phases.follicular_share < 1.0):
        errors.append(f"phases.follicular_share = {phases.follicular_share} must be in (0, 1)")

    # ── Fertile window ──
    fw_raw = raw.get("fertile_window") or {}
    fertile_window = FertileWindowConfig(
        window_days=_num(fw_raw, "window_days", 6, "fertile_window", int),
        luteal_offset_days=_num(fw_raw, "luteal_offset_days", 14, "fertile_window", int),
    )
    if fertile_window.window_days < 1:
        errors.append("fertile_window.window_days must be at least 1")

    # ── Confidence ──
    conf_raw = raw.get("confidence") or {}
    defaults = {
        "very_regular": 0.95,
        "regular": 0.85,
        "moderately_irregular": 0.70,
        "irregular": 0.55,
        "unknown": 0.75,
    }
    confidence: dict[str, float] = {}
    for level in REGULARITY_LEVELS:
        confidence[level] = _num(conf_raw, level, defaults[level], "confidence")
        _probability(confidence[level], f"confidence.{level}")
    no_history_confidence = _num(conf_raw, "no_history", 0.10, "confidence")
    _probability(no_history_confidence, "confidence.no_history")

    # ── Risk heuristics ──
    risk_raw = raw.get("risk") or {}
    pain_raw = risk_raw.get("pain") or {}
    anemia_raw = risk_raw.get("anemia") or {}
    pcos_raw = risk_raw.get("pcos_like_irregularity") or {}
    preg_raw = risk_raw.get("pregnancy_window") or {}
    risk = RiskConfig(
        window_logs=_num(risk_raw, "window_logs", 7, "risk", int),
        pain_base=_num(pain_raw, "base", 0.20, "risk.pain"),
        pain_low_sleep_hours=_num(pain_raw, "low_sleep_hours", 6.5, "risk.pain"),
        pain_low_sleep_bump=_num(pain_raw, "low_sleep_bump", 0.15, "risk.pain"),
        pain_low_steps=_num(pain_raw, "low_steps", 5000, "risk.pain", int),
        pain_low_steps_bump=_num(pain_raw, "low_steps_bump", 0.10, "risk.pain"),
        anemia_base=_num(anemia_raw, "base", 0.05, "risk.anemia"),
        anemia_per_heavy_log=_num(anemia_raw, "per_heavy_log", 0.06, "risk.anemia"),
        pcos_base=_num(pcos_raw, "base", 0.03, "risk.pcos_like_irregularity"),
        pcos_long_cycle_days=_num(pcos_raw, "long_cycle_days", 35, "risk.pcos_like_irregularity", int),
        pcos_long_cycle_bump=_num(pcos_raw, "long_cycle_bump", 0.12, "risk.pcos_like_irregularity"),
        pregnancy_with_window=_num(preg_raw, "with_fertile_window", 0.06, "risk.pregnancy_window"),
        pregnancy_without_window=_num(
            preg_raw, "without_fertile_window", 0.02, "risk.pregnancy_window"
        ),
    )
    if not (5 <= risk.window_logs <= 7):
        errors.append(f"risk.window_logs = {risk.window_logs} must be between 5 and 7")

    # ── Goal rules ──
    g_raw = raw.get("goals") or {}
    screen_range = g_raw.get("screen_time_range", [0.0, 2.0])
    if not isinstance(screen_range, (list, tuple)) or len(screen_range) != 2:
        errors.append(f"goals.screen_time_range must be a [low, high] pair, got {screen_range!r}")
        screen_range = [0.0, 2.0]
    try:
        low, high = float(screen_range[0]), float(screen_range[1])
    except (TypeError, ValueError):
        errors.append(f"goals.screen_time_range must hold numbers, got {screen_range!r}")
        low, high = 0.0, 2.0
    if low > high:
        errors.append(f"goals.screen_time_range [{low}, {high}] is inverted")
    goals = GoalRulesConfig(
        heavy_log_window=_num(g_raw, "heavy_log_window", 5, "goals", int),
        heavy_log_threshold=_num(g_raw, "heavy_log_threshold", 2, "goals", int),
        water_target_ml=_num(g_raw, "water_target_ml", 2400, "goals"),
        low_sleep_hours=_num(g_raw, "low_sleep_hours", 6.0, "goals"),
        high_screen_hours=_num(g_raw, "high_screen_hours", 3.0, "goals"),
        screen_time_range=(low, high),
    )

    # ── Recommendations ──
    rec_raw = raw.get("recommendations") or {}
    recommendations = RecommendationConfig(
        sleep_target_hours=_num(rec_raw, "sleep_target_hours", 7.0, "recommendations"),
        steps_target=_num(rec_raw, "steps_target", 8000, "recommendations", int),
        period_soon_days=_num(rec_raw, "period_soon_days", 3, "recommendations", int),
        risk_focus_threshold=_num(rec_raw, "risk_focus_threshold", 0.30, "recommendations"),
    )

    proj_raw = raw.get("projection") or {}
    default_days_ahead = _num(proj_raw, "default_days_ahead", 90, "projection", int)

    if errors:
        raise ConfigValidationError(
            f"cycle_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return CycleEngineConfig(
        version=version,
        estimator=estimator,
        phases=phases,
        fertile_window=fertile_window,
        confidence=confidence,
        no_history_confidence=no_history_confidence,
        risk=risk,
        goals=goals,
        recommendations=recommendations,
        default_days_ahead=default_days_ahead,
        _raw=raw,
    )


def load_engine_config(path: Path | None = None) -> CycleEngineConfig:
    """Load and validate the engine config from disk.

    Args:
        path: Override path to YAML. Uses the bundled cycle_config.yaml by default.

    Returns:
        Validated CycleEngineConfig instance.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded cycle engine config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: CycleEngineConfig | None = None
_config_lock = threading.Lock()


def _configured_path() -> Path | None:
    from src.config import get_settings

    return get_settings().cycle_config_path


def get_engine_config() -> CycleEngineConfig:
    """Return the global CycleEngineConfig singleton, loading it on first call.

    Thread-safe.  Honors ``NEREID_CYCLE_CONFIG_PATH`` via the application
    settings.  Use ``reload_engine_config()`` to refresh after YAML changes.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_engine_config(_configured_path())
    return _config


def reload_engine_config(path: Path | None = None) -> CycleEngineConfig:
    """Reload the engine config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is
    re-raised.

    Args:
        path: Override path to YAML. Defaults to the configured path.

    Returns:
        The newly loaded CycleEngineConfig.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_engine_config(path or _configured_path())  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info(
        "Reloaded cycle engine config: %s → %s",
        old_version,
        new_config.version,
    )
    return new_config
