"""
Thin, stable API for UI and alerting collaborators.

Contracts (dict in, JSON-ready dict out):
  - correct_reading(inputs) -> dict
  - fit_calibration(readings, calibration_temp_c) -> dict
  - fermentation_progress(inputs) -> dict
  - measurement_schedule(inputs) -> dict
  - measurement_needed(inputs) -> dict

Validation is performed via Pydantic schemas; pydantic.ValidationError and the
cidercore.errors types propagate unchanged to the caller.

Non-finite floats are encoded as null on the way out: days_overdue for a batch
that was never measured, days_since_last_measurement without any history and
interval_days.max for products without a schedule.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional

from . import correction as C
from . import fermentation as FE
from . import fitting as FIT
from . import schedule as SCH
from .defaults import DEFAULT_CALIBRATION_TEMP_C, DEFAULT_STAGE_THRESHOLDS, DEFAULT_STALL_SETTINGS
from .schemas import (
    CalibrationReading,
    FermentationProgressRequest,
    MeasurementScheduleRequest,
    SGCorrectionInput,
)

log = logging.getLogger(__name__)


def _json_ready(obj: Any) -> Any:
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    if isinstance(obj, dict):
        return {k: _json_ready(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_json_ready(v) for v in obj]
    return obj


def correct_reading(inputs: Dict[str, Any]) -> Dict[str, Any]:
    """Correct one raw SG reading; adds a display string under 'display'."""
    try:
        data = SGCorrectionInput.model_validate(inputs)
        result = C.apply_sg_correction(data)
        log.debug("correction strategy=%s raw=%s corrected=%s", result.strategy, result.raw_reading, result.corrected_sg)
        out = result.model_dump(mode="json")
        out["display"] = C.format_correction_breakdown(result)
        return _json_ready(out)
    except Exception:
        log.exception("correct_reading failed")
        raise


def fit_calibration(
    readings: List[Dict[str, Any]],
    calibration_temp_c: float = DEFAULT_CALIBRATION_TEMP_C,
) -> Dict[str, Any]:
    """Fit a calibration session; the result can be stored and passed back as 'calibration'."""
    try:
        parsed = [CalibrationReading.model_validate(r) for r in readings]
        return _json_ready(FIT.calibrate_instrument(parsed, calibration_temp_c).model_dump(mode="json"))
    except Exception:
        log.exception("fit_calibration failed")
        raise


def fermentation_progress(inputs: Dict[str, Any]) -> Dict[str, Any]:
    try:
        req = FermentationProgressRequest.model_validate(inputs)
        progress = FE.analyze_fermentation_progress(
            req.original_gravity,
            req.current_gravity,
            req.target_final_gravity,
            req.measurements,
            stage_thresholds=req.stage_thresholds or DEFAULT_STAGE_THRESHOLDS,
            stall_settings=req.stall_settings or DEFAULT_STALL_SETTINGS,
            terminal_confirmation_hours=req.terminal_confirmation_hours,
            now=req.now,
        )
        out = progress.model_dump(mode="json")
        out["alert_priority"] = FE.get_alert_priority(progress)
        return _json_ready(out)
    except Exception:
        log.exception("fermentation_progress failed")
        raise


def _schedule_request(inputs: Dict[str, Any]) -> MeasurementScheduleRequest:
    return MeasurementScheduleRequest.model_validate(inputs)


def measurement_schedule(inputs: Dict[str, Any]) -> Dict[str, Any]:
    """Resolved schedule plus the next due date when a last measurement is given."""
    try:
        req = _schedule_request(inputs)
        schedule = SCH.get_product_measurement_schedule(
            req.product_type,
            req.fermentation_stage,
            req.has_initial_measurement,
            req.schedule_config,
            req.batch_override,
        )
        out = schedule.model_dump(mode="json")
        next_due: Optional[Any] = SCH.get_next_scheduled_measurement_due(req.last_measurement_date, schedule)
        out["next_measurement_due"] = next_due.isoformat() if next_due is not None else None
        return _json_ready(out)
    except Exception:
        log.exception("measurement_schedule failed")
        raise


def measurement_needed(inputs: Dict[str, Any]) -> Dict[str, Any]:
    try:
        req = _schedule_request(inputs)
        result = SCH.is_measurement_needed(
            req.product_type,
            req.last_measurement_date,
            req.fermentation_stage,
            req.has_initial_measurement,
            req.schedule_config,
            req.batch_override,
            now=req.now,
        )
        return _json_ready(result.model_dump(mode="json"))
    except Exception:
        log.exception("measurement_needed failed")
        raise
