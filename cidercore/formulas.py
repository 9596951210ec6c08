import math

from .anchors import ANCHORS
from .defaults import (
    DEFAULT_CALIBRATION_TEMP_C,
    DEFAULT_CALIBRATION_TEMP_F,
    TEMP_DISPLAY_THRESHOLD_C,
    TEMP_NOOP_TOLERANCE_C,
)
from .schemas import CalibrationCoefficients
from .validation import validate_brix, validate_positive_gravity, validate_temperature_c

# =============================
# Rounding conventions
# =============================

SG_DECIMALS: int = 4
PERCENT_DECIMALS: int = 1


def round_half_up(x: float, places: int) -> float:
    """
    Round to `places` decimals with halves going toward +inf:
        floor(x * 10^places + 0.5) / 10^places
    Python's round() is banker's rounding; stored values use half-up.
    """
    factor = 10.0 ** places
    return math.floor(x * factor + 0.5) / factor


def round_sg(x: float) -> float:
    """Specific gravity precision (4 decimals)."""
    return round_half_up(x, SG_DECIMALS)


# =============================
# Temperature conversions
# =============================

def celsius_to_fahrenheit(t_c: float) -> float:
    """°C → °F."""
    return t_c * 9.0 / 5.0 + 32.0


def fahrenheit_to_celsius(t_f: float) -> float:
    """°F → °C."""
    return (t_f - 32.0) * 5.0 / 9.0


# =============================
# Hydrometer temperature correction
# =============================

W0: float = float(ANCHORS["WATER_W0"])
W1: float = float(ANCHORS["WATER_W1"])
W2: float = float(ANCHORS["WATER_W2"])
W3: float = float(ANCHORS["WATER_W3"])


def water_density_factor(temp_c: float) -> float:
    """
    Relative density of water at temperature:
        f(T) = W0 + W1*T + W2*T^2 + W3*T^3
    The published coefficients take T in °F; the argument is in °C and is
    converted before evaluation.
    Args:
        temp_c: temperature [°C]
    Returns:
        float: density factor [-], ~1.0 around cellar temperatures
    """
    t = celsius_to_fahrenheit(temp_c)
    return W0 + W1 * t + W2 * t * t + W3 * t * t * t


def correct_sg_for_temperature(
    measured_sg: float,
    sample_temp_c: float,
    calibration_temp_c: float = DEFAULT_CALIBRATION_TEMP_C,
) -> float:
    """
    Hydrometer reading referenced to the hydrometer's calibration temperature:
        SG_corr = SG_meas * f(T_sample) / f(T_calibration)
    Args:
        measured_sg: raw hydrometer reading (>0)
        sample_temp_c: sample temperature [°C], -10..100
        calibration_temp_c: hydrometer calibration temperature [°C] (default 15.56 = 60 °F)
    Returns:
        float: corrected SG, 4 decimals. Unchanged when the temperatures differ by < 0.01 °C.
    """
    sg = validate_positive_gravity(measured_sg)
    t_sample = validate_temperature_c(sample_temp_c, "sampleTemperature")
    t_cal = validate_temperature_c(calibration_temp_c, "calibrationTemperature")
    if abs(t_sample - t_cal) < TEMP_NOOP_TOLERANCE_C:
        return sg
    return round_sg(sg * water_density_factor(t_sample) / water_density_factor(t_cal))


def correct_sg_for_temperature_f(
    measured_sg: float,
    sample_temp_f: float,
    calibration_temp_f: float = DEFAULT_CALIBRATION_TEMP_F,
) -> float:
    """Same as correct_sg_for_temperature with temperatures in °F."""
    return correct_sg_for_temperature(
        measured_sg, fahrenheit_to_celsius(sample_temp_f), fahrenheit_to_celsius(calibration_temp_f)
    )


def requires_temperature_correction(
    sample_temp_c: float,
    calibration_temp_c: float = DEFAULT_CALIBRATION_TEMP_C,
    threshold_c: float = TEMP_DISPLAY_THRESHOLD_C,
) -> bool:
    """True when the deviation is large enough to be worth showing (|ΔT| >= threshold)."""
    return abs(sample_temp_c - calibration_temp_c) >= threshold_c


# =============================
# Brix <-> SG
# =============================

def brix_to_sg(brix: float) -> float:
    """
    Brix → SG:
        SG = 1 + Bx / (258.6 - (Bx / 258.2) * 227.1)
    Args:
        brix: sugar content [°Bx], 0..50
    Returns:
        float: specific gravity, 4 decimals
    """
    bx = validate_brix(brix)
    return round_sg(1.0 + bx / (258.6 - (bx / 258.2) * 227.1))


def sg_to_brix(sg: float) -> float:
    """
    SG → Brix (cubic fit, inverse of brix_to_sg within 0.1 °Bx):
        Bx = ((182.4601*SG - 775.6821)*SG + 1262.7794)*SG - 669.5622
    Returns:
        float: °Bx, 2 decimals
    """
    x = validate_positive_gravity(sg)
    return round_half_up(((182.4601 * x - 775.6821) * x + 1262.7794) * x - 669.5622, 2)


def sg_to_brix_points(sg: float) -> float:
    """Linear Brix-equivalent used by the Terrill cubic: (SG - 1) * 250."""
    return (sg - 1.0) * float(ANCHORS["BRIX_PER_SG_POINT"])


# =============================
# Refractometer alcohol correction
# =============================

def correct_refractometer(
    reading: float,
    original_gravity: float,
    coefficients: CalibrationCoefficients,
    baseline_offset: float = 0.0,
) -> float:
    """
    Calibrated refractometer correction:
        SG_corr = a * (R - offset) + b * OG + c
    Args:
        reading: raw refractometer reading in SG
        original_gravity: batch OG
        coefficients: fitted (a, b, c)
        baseline_offset: fresh-juice offset of the instrument (refractometer - hydrometer)
    Returns:
        float: corrected SG, 4 decimals
    """
    validate_positive_gravity(reading, "refractometerReading")
    validate_positive_gravity(original_gravity, "originalGravity")
    adjusted = reading - baseline_offset
    return round_sg(coefficients.a * adjusted + coefficients.b * original_gravity + coefficients.c)


def terrill_correction(original_gravity: float, refractometer_sg: float) -> float:
    """
    Terrill cubic for uncalibrated refractometers (OG and reading as Brix points):
        FG = K0 + OG1*Bo + OG2*Bo^2 + OG3*Bo^3 + FG1*Bf + FG2*Bf^2 + FG3*Bf^3
    Returns:
        float: corrected SG, 4 decimals
    """
    validate_positive_gravity(original_gravity, "originalGravity")
    validate_positive_gravity(refractometer_sg, "refractometerReading")
    bo = sg_to_brix_points(original_gravity)
    bf = sg_to_brix_points(refractometer_sg)
    corrected = (
        ANCHORS["TERRILL_K0"]
        + ANCHORS["TERRILL_OG1"] * bo
        + ANCHORS["TERRILL_OG2"] * bo ** 2
        + ANCHORS["TERRILL_OG3"] * bo ** 3
        + ANCHORS["TERRILL_FG1"] * bf
        + ANCHORS["TERRILL_FG2"] * bf ** 2
        + ANCHORS["TERRILL_FG3"] * bf ** 3
    )
    return round_sg(corrected)


if __name__ == "__main__":
    assert correct_sg_for_temperature(1.050, 15.56) == 1.050
    assert terrill_correction(1.050, 1.020) == 1.0011
    print("Self-check OK.")
