"""
Fermentation progress tracking from specific-gravity history.

Progress is always derived on demand from OG, current SG, target FG and the
measurement history; nothing here is cached between calls. Histories may be
passed in any order: the stall and terminal checks sort newest-first before
comparing the two most recent readings.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple

from .defaults import (
    DEFAULT_STAGE_THRESHOLDS,
    DEFAULT_STALL_SETTINGS,
    DEFAULT_TARGET_FG_BY_STYLE,
    DEFAULT_TERMINAL_CONFIRMATION_HOURS,
)
from .errors import DomainConsistencyError
from .formulas import PERCENT_DECIMALS, round_half_up
from .schemas import (
    FermentationMeasurement,
    FermentationProgress,
    FermentationStage,
    MeasurementFrequency,
    Priority,
    StageThresholds,
    StallSettings,
)
from .validation import validate_consistent_timezones, validate_positive_gravity, validate_specific_gravity

SECONDS_PER_DAY: float = 86400.0
SECONDS_PER_HOUR: float = 3600.0

STAGE_FREQUENCIES: Mapping[str, MeasurementFrequency] = MappingProxyType({
    "early": MeasurementFrequency(min_days=1, max_days=2, description="Active fermentation - measure frequently"),
    "mid": MeasurementFrequency(min_days=2, max_days=3, description="Fermentation slowing - moderate frequency"),
    "approaching_dry": MeasurementFrequency(min_days=3, max_days=4, description="Nearly complete - reduce frequency"),
    "terminal": MeasurementFrequency(min_days=7, max_days=14, description="Monitoring only - weekly checks"),
    "unknown": MeasurementFrequency(min_days=1, max_days=3, description="Take initial measurement to establish stage"),
})

ACTION_RECORD_GRAVITIES = "Record OG, current SG, and target FG to track progress"
ACTION_STALLED = "Fermentation may have stalled - consider temperature adjustment or yeast addition"
ACTION_CONFIRM_TERMINAL = "Take another hydrometer reading to confirm terminal gravity"


def _now(now: Optional[datetime], reference: Optional[datetime] = None) -> datetime:
    if now is not None:
        return now
    # match the reference's awareness so subtraction works for naive and aware histories
    return datetime.now(reference.tzinfo if reference is not None else None)


def order_newest_first(measurements: Iterable[FermentationMeasurement]) -> List[FermentationMeasurement]:
    history = list(measurements)
    validate_consistent_timezones(m.measurement_date for m in history)
    return sorted(history, key=lambda m: m.measurement_date, reverse=True)


# =============================
# Progress and stage
# =============================

def calculate_percent_fermented(
    original_gravity: float,
    current_gravity: float,
    target_final_gravity: float,
    *,
    strict: bool = False,
) -> float:
    """
    Percent of the expected gravity drop already achieved:
        % = (OG - SG) / (OG - FG_target) * 100, 1 decimal
    May exceed 100 when SG falls below the target.

    OG < SG or OG <= FG_target returns 0 (progress is never shown negative);
    with strict=True those cases raise DomainConsistencyError instead.

    >>> calculate_percent_fermented(1.050, 1.020, 0.998)
    57.7
    """
    og = validate_positive_gravity(original_gravity, "originalGravity")
    sg = validate_positive_gravity(current_gravity, "currentGravity")
    fg = validate_positive_gravity(target_final_gravity, "targetFinalGravity")

    if og < sg:
        if strict:
            raise DomainConsistencyError(f"Original gravity {og} is below current gravity {sg}")
        return 0.0
    if og <= fg:
        if strict:
            raise DomainConsistencyError(f"Original gravity {og} must exceed target final gravity {fg}")
        return 0.0

    return round_half_up((og - sg) / (og - fg) * 100.0, PERCENT_DECIMALS)


def determine_stage(
    percent_fermented: float,
    thresholds: StageThresholds = DEFAULT_STAGE_THRESHOLDS,
) -> FermentationStage:
    if percent_fermented < 0:
        return "unknown"
    if percent_fermented < thresholds.early_max:
        return "early"
    if percent_fermented < thresholds.mid_max:
        return "mid"
    if percent_fermented < thresholds.approaching_dry_max:
        return "approaching_dry"
    return "terminal"


def calculate_fermentation_progress(
    original_gravity: float,
    current_gravity: float,
    target_final_gravity: float,
    thresholds: StageThresholds = DEFAULT_STAGE_THRESHOLDS,
) -> Tuple[float, FermentationStage]:
    percent = calculate_percent_fermented(original_gravity, current_gravity, target_final_gravity)
    return percent, determine_stage(percent, thresholds)


def target_final_gravity_for_style(
    style: str,
    targets: Mapping[str, float] = DEFAULT_TARGET_FG_BY_STYLE,
) -> Optional[float]:
    """Expected FG for a sweetness style ('dry', 'semi-dry', ...); None if unknown."""
    return targets.get(style.strip().lower())


# =============================
# Stall and terminal detection
# =============================

def detect_stall(
    measurements: Iterable[FermentationMeasurement],
    settings: StallSettings = DEFAULT_STALL_SETTINGS,
) -> bool:
    """
    Stalled when the two most recent readings are at least `settings.days`
    apart and differ by less than `settings.threshold` SG.
    """
    if not settings.enabled:
        return False
    ordered = order_newest_first(measurements)
    if len(ordered) < 2:
        return False
    latest, previous = ordered[0], ordered[1]

    days_between = abs((latest.measurement_date - previous.measurement_date).total_seconds()) / SECONDS_PER_DAY
    if days_between < settings.days:
        return False

    return abs(latest.specific_gravity - previous.specific_gravity) < settings.threshold


def is_terminal_confirmed(
    measurements: Iterable[FermentationMeasurement],
    confirmation_hours: float = DEFAULT_TERMINAL_CONFIRMATION_HOURS,
) -> bool:
    """
    Two most recent hydrometer readings identical and >= confirmation_hours apart.
    Refractometer and calculated values are ignored; a reading without a
    method counts as hydrometer.
    """
    hydrometer = [m for m in order_newest_first(measurements) if m.method in (None, "hydrometer")]
    if len(hydrometer) < 2:
        return False
    latest, previous = hydrometer[0], hydrometer[1]
    if latest.specific_gravity != previous.specific_gravity:
        return False
    hours_between = abs((latest.measurement_date - previous.measurement_date).total_seconds()) / SECONDS_PER_HOUR
    return hours_between >= confirmation_hours


# =============================
# Measurement timing
# =============================

def get_recommended_measurement_frequency(stage: Optional[str]) -> MeasurementFrequency:
    return STAGE_FREQUENCIES.get(stage or "unknown", STAGE_FREQUENCIES["unknown"])


def get_days_since_last_measurement(last_measurement_date: Optional[datetime], now: Optional[datetime] = None) -> float:
    """Whole days elapsed (floored); inf when there has been no measurement."""
    if last_measurement_date is None:
        return math.inf
    validate_consistent_timezones((last_measurement_date, now), "lastMeasurementDate")
    elapsed = _now(now, last_measurement_date) - last_measurement_date
    return float(math.floor(elapsed.total_seconds() / SECONDS_PER_DAY))


def get_next_measurement_due(
    last_measurement_date: Optional[datetime],
    stage: FermentationStage,
    now: Optional[datetime] = None,
) -> datetime:
    """Last measurement + the stage's max interval; now when never measured."""
    if last_measurement_date is None:
        return _now(now)
    return last_measurement_date + timedelta(days=get_recommended_measurement_frequency(stage).max_days)


def is_measurement_due(
    last_measurement_date: Optional[datetime],
    stage: FermentationStage,
    now: Optional[datetime] = None,
) -> bool:
    if last_measurement_date is None:
        return True
    days_since = get_days_since_last_measurement(last_measurement_date, now)
    return days_since >= get_recommended_measurement_frequency(stage).max_days


# =============================
# Full analysis
# =============================

def analyze_fermentation_progress(
    original_gravity: Optional[float],
    current_gravity: Optional[float],
    target_final_gravity: Optional[float],
    measurements: Iterable[FermentationMeasurement] = (),
    *,
    stage_thresholds: StageThresholds = DEFAULT_STAGE_THRESHOLDS,
    stall_settings: StallSettings = DEFAULT_STALL_SETTINGS,
    terminal_confirmation_hours: float = DEFAULT_TERMINAL_CONFIRMATION_HOURS,
    now: Optional[datetime] = None,
) -> FermentationProgress:
    """
    Percent, stage, stall and terminal flags plus one recommended action,
    chosen by priority: stalled > unconfirmed terminal > measurement due >
    time until next measurement.

    Missing OG, current SG or target FG yields stage 'unknown' with a request
    to record them. Inconsistent gravities degrade to 0% rather than raise;
    gravities outside the plausible beverage range do raise.
    """
    history = order_newest_first(measurements)
    last = history[0].measurement_date if history else None
    validate_consistent_timezones((last, now))
    now = _now(now, last)
    days_since = get_days_since_last_measurement(last, now)

    if original_gravity is None or current_gravity is None or target_final_gravity is None:
        return FermentationProgress(
            percent_fermented=0.0,
            stage="unknown",
            is_stalled=False,
            days_since_last_measurement=days_since,
            recommended_action=ACTION_RECORD_GRAVITIES,
            next_measurement_due=now,
            is_terminal_confirmed=False,
        )

    percent, stage = calculate_fermentation_progress(
        validate_specific_gravity(original_gravity, "originalGravity"),
        validate_specific_gravity(current_gravity, "currentGravity"),
        validate_specific_gravity(target_final_gravity, "targetFinalGravity"),
        stage_thresholds,
    )

    # a terminal plateau is expected, not a stall
    stalled = stage != "terminal" and detect_stall(history, stall_settings)
    confirmed = stage == "terminal" and is_terminal_confirmed(history, terminal_confirmation_hours)
    frequency = get_recommended_measurement_frequency(stage)
    next_due = get_next_measurement_due(last, stage, now)

    if stalled:
        action = ACTION_STALLED
    elif stage == "terminal" and not confirmed:
        action = ACTION_CONFIRM_TERMINAL
    elif is_measurement_due(last, stage, now):
        action = f"Measurement due - {frequency.description}"
    else:
        days_until_due = math.ceil((next_due - now).total_seconds() / SECONDS_PER_DAY)
        action = f"Next measurement in {days_until_due} day(s)" if days_until_due > 0 else frequency.description

    return FermentationProgress(
        percent_fermented=percent,
        stage=stage,
        is_stalled=stalled,
        days_since_last_measurement=days_since,
        recommended_action=action,
        next_measurement_due=next_due,
        is_terminal_confirmed=confirmed,
    )


def get_alert_priority(progress: FermentationProgress) -> Optional[Priority]:
    """Dashboard alert level for a progress snapshot; None when no alert is warranted."""
    if progress.is_stalled:
        return "high"
    if progress.stage == "terminal" and progress.is_terminal_confirmed:
        return None

    frequency = get_recommended_measurement_frequency(progress.stage)
    days = progress.days_since_last_measurement
    if days > frequency.max_days * 2:
        return "high"
    if days > frequency.max_days:
        return "medium"
    if days >= frequency.min_days:
        return "low"
    return None
