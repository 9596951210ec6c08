"""
Product-type measurement scheduling.

cider / perry     SG-driven, interval follows the fermentation stage
brandy            sensory & volume check every 30 days
pommeau           sensory & volume check every 90 days
juice             no scheduled measurements, no alerts

Resolution order: per-batch override > product-type config > built-in defaults.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Mapping, Optional, Sequence, Tuple

from .defaults import DEFAULT_PRODUCT_SCHEDULES
from .fermentation import get_days_since_last_measurement, get_recommended_measurement_frequency
from .schemas import (
    AlertType,
    BatchMeasurementOverride,
    FermentationStage,
    IntervalDays,
    MeasurementNeededResult,
    MeasurementScheduleConfig,
    MeasurementType,
    ProductScheduleResult,
    TaskType,
)

NO_SCHEDULE_DESCRIPTION = "No scheduled measurements"


def resolve_schedule_config(
    product_type: str,
    config: Optional[MeasurementScheduleConfig] = None,
    schedules: Mapping[str, MeasurementScheduleConfig] = DEFAULT_PRODUCT_SCHEDULES,
) -> MeasurementScheduleConfig:
    """Organization config if given, else the product's default, else cider."""
    if config is not None:
        return config
    return schedules.get(product_type) or DEFAULT_PRODUCT_SCHEDULES["cider"]


def get_measurement_types_for_batch(
    config: MeasurementScheduleConfig,
    has_initial_measurement: bool,
) -> Tuple[MeasurementType, ...]:
    if not has_initial_measurement:
        return config.initial_measurement_types
    return config.ongoing_measurement_types


def _override_alert_type(override: Optional[BatchMeasurementOverride], fallback: Optional[AlertType]) -> Optional[AlertType]:
    # an explicit None on the override silences alerts
    if override is not None and "alert_type" in override.model_fields_set:
        return override.alert_type
    return fallback


def get_product_measurement_schedule(
    product_type: str,
    fermentation_stage: Optional[FermentationStage],
    has_initial_measurement: bool,
    config: Optional[MeasurementScheduleConfig] = None,
    override: Optional[BatchMeasurementOverride] = None,
    *,
    schedules: Mapping[str, MeasurementScheduleConfig] = DEFAULT_PRODUCT_SCHEDULES,
) -> ProductScheduleResult:
    base = resolve_schedule_config(product_type, config, schedules)

    measurement_types = get_measurement_types_for_batch(base, has_initial_measurement)
    if override is not None and override.measurement_types:
        measurement_types = override.measurement_types

    alert_type = _override_alert_type(override, base.alert_type)
    override_interval = override.interval_days if override is not None else None

    if base.uses_fermentation_stages:
        # no reading yet means the stage is still to be established
        frequency = get_recommended_measurement_frequency(fermentation_stage or "unknown")
        if override_interval is not None:
            interval = IntervalDays(min=override_interval, max=override_interval)
        else:
            interval = IntervalDays(min=frequency.min_days, max=frequency.max_days)
        return ProductScheduleResult(
            measurement_types=measurement_types,
            interval_days=interval,
            alert_type=alert_type,
            description=frequency.description,
            uses_fermentation_stages=True,
            primary_measurement=base.primary_measurement,
        )

    days = override_interval if override_interval is not None else base.default_interval_days
    if days is None:
        return ProductScheduleResult(
            measurement_types=measurement_types,
            interval_days=IntervalDays(min=0, max=math.inf),
            alert_type=None,
            description=NO_SCHEDULE_DESCRIPTION,
            uses_fermentation_stages=False,
            primary_measurement=base.primary_measurement,
        )

    return ProductScheduleResult(
        measurement_types=measurement_types,
        interval_days=IntervalDays(min=days, max=days),
        alert_type=alert_type,
        description=interval_description(product_type, days, measurement_types),
        uses_fermentation_stages=False,
        primary_measurement=base.primary_measurement,
    )


def interval_description(product_type: str, days: int, measurement_types: Sequence[MeasurementType]) -> str:
    """Human-readable cadence, e.g. 'Quarterly sensory & volume check (every 90 days)'."""
    has_sensory = "sensory" in measurement_types
    has_volume = "volume" in measurement_types

    if product_type == "brandy":
        if has_sensory:
            return f"Monthly sensory check (every {days} days)"
        return f"Monthly check (every {days} days)"

    if product_type == "pommeau":
        if has_sensory and has_volume:
            return f"Quarterly sensory & volume check (every {days} days)"
        if has_sensory:
            return f"Quarterly sensory check (every {days} days)"
        return f"Quarterly check (every {days} days)"

    if has_sensory:
        return f"Sensory check every {days} days"
    return f"Check every {days} days"


def task_type_for(measurement_types: Sequence[MeasurementType]) -> TaskType:
    if "sg" in measurement_types and "sensory" not in measurement_types:
        return "measurement_needed"
    if "sensory" in measurement_types:
        return "sensory_check_due"
    return "check_in_due"


def is_measurement_needed(
    product_type: str,
    last_measurement_date: Optional[datetime],
    fermentation_stage: Optional[FermentationStage],
    has_initial_measurement: bool,
    schedule_config: Optional[MeasurementScheduleConfig] = None,
    batch_override: Optional[BatchMeasurementOverride] = None,
    *,
    schedules: Mapping[str, MeasurementScheduleConfig] = DEFAULT_PRODUCT_SCHEDULES,
    now: Optional[datetime] = None,
) -> MeasurementNeededResult:
    """
    Overdue determination against the resolved schedule:
      never measured                     -> needed, high
      overdue by more than the interval  -> needed, high
      overdue                            -> needed, medium
      inside the [min, max] window       -> not needed, low (informational)
    """
    schedule = get_product_measurement_schedule(
        product_type, fermentation_stage, has_initial_measurement, schedule_config, batch_override,
        schedules=schedules,
    )

    if schedule.alert_type is None:
        return MeasurementNeededResult(needed=False, days_overdue=0, priority=None, task_type=None)

    task_type = task_type_for(schedule.measurement_types)

    if last_measurement_date is None:
        return MeasurementNeededResult(needed=True, days_overdue=math.inf, priority="high", task_type=task_type)

    if math.isinf(schedule.interval_days.max):
        return MeasurementNeededResult(needed=False, days_overdue=0, priority=None, task_type=None)

    days_since = get_days_since_last_measurement(last_measurement_date, now)
    overdue = days_since - schedule.interval_days.max

    if overdue > schedule.interval_days.max:
        return MeasurementNeededResult(needed=True, days_overdue=overdue, priority="high", task_type=task_type)
    if overdue > 0:
        return MeasurementNeededResult(needed=True, days_overdue=overdue, priority="medium", task_type=task_type)
    if days_since >= schedule.interval_days.min:
        return MeasurementNeededResult(needed=False, days_overdue=0, priority="low", task_type=task_type)
    return MeasurementNeededResult(needed=False, days_overdue=0, priority=None, task_type=None)


def get_next_scheduled_measurement_due(
    last_measurement_date: Optional[datetime],
    schedule: ProductScheduleResult,
) -> Optional[datetime]:
    if last_measurement_date is None or math.isinf(schedule.interval_days.max):
        return None
    return last_measurement_date + timedelta(days=schedule.interval_days.max)
