"""
Single entry point for correcting a raw SG reading.

Routing:
  hydrometer                          -> temperature correction
  refractometer, fresh juice          -> baseline offset only
  refractometer, coefficients and OG  -> calibrated linear model
  refractometer, OG only              -> Terrill fallback
  refractometer, no OG                -> uncorrected
"""
from __future__ import annotations

from .formulas import correct_refractometer, correct_sg_for_temperature, round_sg, terrill_correction
from .schemas import CalibrationBundle, CorrectionBreakdown, SGCorrectionInput, SGCorrectionResult


def apply_sg_correction(data: SGCorrectionInput) -> SGCorrectionResult:
    """Apply every correction that the available data allows; see module docstring."""
    raw = data.raw_reading
    calibration = data.calibration or CalibrationBundle()

    if data.instrument_type == "hydrometer":
        corrected = correct_sg_for_temperature(raw, data.temperature_c, calibration.hydrometer_calibration_temp_c)
        return SGCorrectionResult(
            corrected_sg=round_sg(corrected),
            raw_reading=raw,
            corrections=CorrectionBreakdown(temp=round_sg(corrected - raw)),
            strategy="temperature",
        )

    offset = calibration.refractometer_baseline_offset

    if data.is_fresh_juice:
        # no alcohol yet, only the instrument's zero error
        if offset == 0:
            return SGCorrectionResult(corrected_sg=round_sg(raw), raw_reading=raw, strategy="fresh_juice")
        return SGCorrectionResult(
            corrected_sg=round_sg(raw - offset),
            raw_reading=raw,
            corrections=CorrectionBreakdown(baseline=-offset),
            strategy="fresh_juice",
        )

    if data.original_gravity is not None and calibration.linear_coefficients is not None:
        corrected = correct_refractometer(raw, data.original_gravity, calibration.linear_coefficients, offset)
        total = corrected - raw
        if offset != 0:
            breakdown = CorrectionBreakdown(baseline=-offset, alcohol=round_sg(total + offset))
        else:
            breakdown = CorrectionBreakdown(alcohol=round_sg(total))
        return SGCorrectionResult(
            corrected_sg=round_sg(corrected), raw_reading=raw, corrections=breakdown, strategy="calibrated"
        )

    if data.original_gravity is not None:
        corrected = terrill_correction(data.original_gravity, raw)
        return SGCorrectionResult(
            corrected_sg=round_sg(corrected),
            raw_reading=raw,
            corrections=CorrectionBreakdown(alcohol=round_sg(corrected - raw)),
            strategy="fallback",
        )

    return SGCorrectionResult(corrected_sg=round_sg(raw), raw_reading=raw, strategy="uncorrected")


def _signed(value: float) -> str:
    return f"{'+' if value >= 0 else ''}{value:.4f}"


def format_correction_breakdown(result: SGCorrectionResult) -> str:
    """e.g. '1.0120 (raw: 1.0200, temp: +0.0020, alcohol: -0.0100)'"""
    parts = []
    for label in ("temp", "baseline", "alcohol"):
        value = getattr(result.corrections, label)
        if value is not None and value != 0:
            parts.append(f"{label}: {_signed(value)}")
    if not parts:
        return f"{result.corrected_sg:.4f} (no correction)"
    return f"{result.corrected_sg:.4f} (raw: {result.raw_reading:.4f}, {', '.join(parts)})"
