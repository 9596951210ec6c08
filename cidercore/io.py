"""
Lightweight parsers for cellar-log text exports.

Both formats are semicolon-separated, one record per line; blank lines and
lines starting with '#' are skipped, as is a leading header row. Decimal
commas are normalized, so exports from European spreadsheets load unchanged.
Parsers return plain dicts consumable by cidercore.api.

Calibration session:
    OG;refractometer;hydrometer;temperature_C[;fresh]
    1,050;1,048;1,049;20
    1.060;1.030;1.012;18;no

Measurement log:
    date;SG[;method]
    2024-09-01T08:00;1,048;hydrometer
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List

_TRUE_FLAGS = {"1", "y", "yes", "true", "x", "fresh"}
_FALSE_FLAGS = {"", "0", "n", "no", "false"}


def _norm_number(s: str) -> float:
    s_clean = s.strip().replace("\u00A0", "").replace(" ", "").replace(",", ".")
    try:
        return float(s_clean)
    except ValueError as e:
        raise ValueError(f"Invalid numeric value: '{s}'") from e


def _norm_flag(s: str) -> bool:
    v = s.strip().lower()
    if v in _TRUE_FLAGS:
        return True
    if v in _FALSE_FLAGS:
        return False
    raise ValueError(f"Invalid yes/no value: '{s}'")


def _records(text: str) -> List[List[str]]:
    out: List[List[str]] = []
    for ln in text.splitlines():
        ln = ln.strip()
        if not ln or ln.startswith("#"):
            continue
        parts = [p.strip() for p in ln.split(";")]
        # header row: first cell is not a number or date
        if not out and parts and not any(ch.isdigit() for ch in parts[0]):
            continue
        out.append(parts)
    return out


def parse_calibration_readings(text: str) -> List[Dict[str, Any]]:
    readings: List[Dict[str, Any]] = []
    for parts in _records(text):
        if len(parts) < 4:
            raise ValueError(f"Malformed calibration row (need at least 4 columns): '{';'.join(parts)}'")
        row: Dict[str, Any] = {
            "original_gravity": _norm_number(parts[0]),
            "refractometer_reading": _norm_number(parts[1]),
            "hydrometer_reading": _norm_number(parts[2]),
            "temperature_c": _norm_number(parts[3]),
            "is_fresh_juice": False,
        }
        if len(parts) >= 5:
            row["is_fresh_juice"] = _norm_flag(parts[4])
        readings.append(row)
    return readings


def parse_measurement_log(text: str) -> List[Dict[str, Any]]:
    measurements: List[Dict[str, Any]] = []
    for parts in _records(text):
        if len(parts) < 2:
            raise ValueError(f"Malformed measurement row (need at least 2 columns): '{';'.join(parts)}'")
        try:
            when = datetime.fromisoformat(parts[0])
        except ValueError as e:
            raise ValueError(f"Invalid date: '{parts[0]}'") from e
        row: Dict[str, Any] = {
            "measurement_date": when,
            "specific_gravity": _norm_number(parts[1]),
        }
        if len(parts) >= 3 and parts[2]:
            row["method"] = parts[2].lower()
        measurements.append(row)
    return measurements
