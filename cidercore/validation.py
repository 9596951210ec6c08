"""
Range validation for specific gravity, temperature, Brix and date inputs.

Each validator returns the value as float when it is acceptable and raises
MeasurementValidationError otherwise.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, Optional

from .anchors import ANCHORS
from .errors import MeasurementValidationError

SG_MIN: float = float(ANCHORS["SG_MIN"])
SG_MAX: float = float(ANCHORS["SG_MAX"])
TEMP_MIN_C: float = float(ANCHORS["TEMP_MIN_C"])
TEMP_MAX_C: float = float(ANCHORS["TEMP_MAX_C"])
BRIX_MIN: float = float(ANCHORS["BRIX_MIN"])
BRIX_MAX: float = float(ANCHORS["BRIX_MAX"])


def _require_finite(value: float, name: str, label: str) -> float:
    try:
        x = float(value)
    except (TypeError, ValueError) as e:
        raise MeasurementValidationError(
            f"{label} must be a valid number: {value!r}",
            f"{label} must be a valid number. Please check your input.",
            {name: value, "measurementType": name},
        ) from e
    if not math.isfinite(x):
        raise MeasurementValidationError(
            f"{label} must be a valid number: {value!r}",
            f"{label} must be a valid number. Please check your input.",
            {name: value, "measurementType": name},
        )
    return x


def validate_positive_gravity(sg: float, name: str = "specificGravity") -> float:
    """SG > 0; used by the raw corrections where any positive reading is accepted."""
    x = _require_finite(sg, name, "Specific gravity")
    if x <= 0:
        raise MeasurementValidationError(
            f"Specific gravity must be positive: {x}",
            "Gravity readings must be positive numbers.",
            {name: x, "measurementType": name},
        )
    return x


def validate_specific_gravity(sg: float, name: str = "specificGravity") -> float:
    """SG within the plausible beverage range [0.98, 1.2]."""
    x = validate_positive_gravity(sg, name)
    if x < SG_MIN or x > SG_MAX:
        raise MeasurementValidationError(
            f"Specific gravity outside plausible range: {x}",
            f"Specific gravity of {x} is outside the expected range "
            f"{SG_MIN:.3f}-{SG_MAX:.3f}. Please verify your measurement.",
            {name: x, "minAllowed": SG_MIN, "maxAllowed": SG_MAX, "measurementType": name},
        )
    return x


def validate_temperature_c(temp_c: float, name: str = "temperature") -> float:
    x = _require_finite(temp_c, name, "Temperature")
    if x < TEMP_MIN_C or x > TEMP_MAX_C:
        raise MeasurementValidationError(
            f"Temperature out of range: {x}°C",
            f"Temperature of {x}°C is outside the supported range "
            f"({TEMP_MIN_C:g} to {TEMP_MAX_C:g}°C).",
            {name: x, "minAllowed": TEMP_MIN_C, "maxAllowed": TEMP_MAX_C, "measurementType": name},
        )
    return x


def validate_brix(brix: float) -> float:
    x = _require_finite(brix, "brix", "Brix")
    if x < BRIX_MIN or x > BRIX_MAX:
        raise MeasurementValidationError(
            f"Brix must be between {BRIX_MIN:g} and {BRIX_MAX:g}: {x}",
            f"Brix must be between {BRIX_MIN:g} and {BRIX_MAX:g}.",
            {"brix": x, "minAllowed": BRIX_MIN, "maxAllowed": BRIX_MAX, "measurementType": "brix"},
        )
    return x


def validate_consistent_timezones(dates: Iterable[Optional[datetime]], name: str = "measurementDate") -> None:
    """All given datetimes are timezone-aware, or all are naive; None entries are ignored."""
    aware = {d.utcoffset() is not None for d in dates if d is not None}
    if len(aware) > 1:
        raise MeasurementValidationError(
            "Cannot mix timezone-aware and naive datetimes",
            "Dates must either all include a timezone or all omit it.",
            {"measurementType": name},
        )
