"""
Refractometer calibration fitting.

A refractometer reads high once alcohol is present. Paired lab readings
(refractometer, OG, temperature-corrected hydrometer) are fitted to

    hydrometer = a * refractometer + b * OG + c

by ordinary least squares. The normal equations are accumulated from sums and
solved with a small dense Gaussian elimination; the solver is generic over N
but only the 3-parameter fit is part of the public contract.
"""
from __future__ import annotations

from typing import List, Sequence

from .defaults import DEFAULT_CALIBRATION_TEMP_C, MIN_CALIBRATION_READINGS, PIVOT_EPSILON
from .errors import InsufficientDataError, SingularMatrixError
from .formulas import correct_sg_for_temperature, round_sg
from .schemas import (
    CalibrationCoefficients,
    CalibrationReading,
    CalibrationResult,
    InstrumentCalibration,
    PreparedCalibrationReading,
    Prediction,
)


def solve_linear_system(matrix: Sequence[Sequence[float]], rhs: Sequence[float]) -> List[float]:
    """
    Solve A x = b for a dense N x N system by Gaussian elimination with
    partial pivoting (largest absolute pivot per column).
    Args:
        matrix: N rows of N coefficients
        rhs: N right-hand-side values
    Returns:
        list[float]: solution x
    Raises:
        SingularMatrixError: a pivot is below 1e-10 in magnitude
    """
    n = len(rhs)
    if n == 0 or len(matrix) != n or any(len(row) != n for row in matrix):
        raise ValueError("matrix must be N x N and rhs of length N (N >= 1)")

    # augmented copy; inputs stay untouched
    m = [[float(v) for v in row] + [float(b)] for row, b in zip(matrix, rhs)]

    for i in range(n):
        pivot_row = max(range(i, n), key=lambda k: abs(m[k][i]))
        m[i], m[pivot_row] = m[pivot_row], m[i]
        if abs(m[i][i]) < PIVOT_EPSILON:
            raise SingularMatrixError("Matrix is singular or nearly singular")
        for k in range(i + 1, n):
            factor = m[k][i] / m[i][i]
            for j in range(i, n + 1):
                m[k][j] -= factor * m[i][j]

    x = [0.0] * n
    for i in range(n - 1, -1, -1):
        s = m[i][n]
        for j in range(i + 1, n):
            s -= m[i][j] * x[j]
        x[i] = s / m[i][i]
    return x


def fit_linear_calibration(readings: Sequence[PreparedCalibrationReading]) -> CalibrationResult:
    """
    Least-squares fit of y = a*x1 + b*x2 + c with
    x1 = refractometer reading, x2 = original gravity, y = corrected hydrometer.

    Coefficients, R², max/avg absolute error and per-reading predictions are
    rounded to 4 decimals. R² is 1 when all y are equal (SStot = 0).
    """
    n = len(readings)
    if n < MIN_CALIBRATION_READINGS:
        raise InsufficientDataError(
            f"Need at least {MIN_CALIBRATION_READINGS} readings to calculate calibration (got {n})"
        )

    s_x1 = s_x2 = s_y = 0.0
    s_x1x1 = s_x1x2 = s_x2x2 = 0.0
    s_x1y = s_x2y = 0.0
    for r in readings:
        x1 = r.refractometer_reading
        x2 = r.original_gravity
        y = r.hydrometer_corrected
        s_x1 += x1
        s_x2 += x2
        s_y += y
        s_x1x1 += x1 * x1
        s_x1x2 += x1 * x2
        s_x2x2 += x2 * x2
        s_x1y += x1 * y
        s_x2y += x2 * y

    xtx = [
        [s_x1x1, s_x1x2, s_x1],
        [s_x1x2, s_x2x2, s_x2],
        [s_x1, s_x2, float(n)],
    ]
    xty = [s_x1y, s_x2y, s_y]
    a, b, c = solve_linear_system(xtx, xty)

    y_mean = s_y / n
    ss_res = ss_tot = 0.0
    max_abs = sum_abs = 0.0
    predictions: List[Prediction] = []
    for r in readings:
        predicted = a * r.refractometer_reading + b * r.original_gravity + c
        error = predicted - r.hydrometer_corrected
        predictions.append(Prediction(
            actual=round_sg(r.hydrometer_corrected),
            predicted=round_sg(predicted),
            error=round_sg(error),
        ))
        ss_res += error * error
        ss_tot += (r.hydrometer_corrected - y_mean) ** 2
        max_abs = max(max_abs, abs(error))
        sum_abs += abs(error)

    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else 1.0

    return CalibrationResult(
        coefficients=CalibrationCoefficients(a=round_sg(a), b=round_sg(b), c=round_sg(c)),
        r_squared=min(1.0, round_sg(r_squared)),
        max_error=round_sg(max_abs),
        avg_error=round_sg(sum_abs / n),
        predictions=tuple(predictions),
    )


def prepare_calibration_readings(
    readings: Sequence[CalibrationReading],
    hydrometer_calibration_temp_c: float = DEFAULT_CALIBRATION_TEMP_C,
) -> List[PreparedCalibrationReading]:
    """Temperature-correct the hydrometer side of each calibration pair."""
    return [
        PreparedCalibrationReading(
            original_gravity=r.original_gravity,
            refractometer_reading=r.refractometer_reading,
            hydrometer_corrected=correct_sg_for_temperature(
                r.hydrometer_reading, r.temperature_c, hydrometer_calibration_temp_c
            ),
        )
        for r in readings
    ]


def baseline_offset_from_fresh_juice(
    readings: Sequence[CalibrationReading],
    hydrometer_calibration_temp_c: float = DEFAULT_CALIBRATION_TEMP_C,
) -> float:
    """
    Instrument zero error from unfermented juice, where no alcohol skews the
    refractometer: mean(refractometer) - mean(corrected hydrometer).
    Returns 0 when no fresh-juice readings are present.
    """
    fresh = [r for r in readings if r.is_fresh_juice]
    if not fresh:
        return 0.0
    avg_refrac = sum(r.refractometer_reading for r in fresh) / len(fresh)
    avg_hydro = sum(
        correct_sg_for_temperature(r.hydrometer_reading, r.temperature_c, hydrometer_calibration_temp_c)
        for r in fresh
    ) / len(fresh)
    return round_sg(avg_refrac - avg_hydro)


def calibrate_instrument(
    readings: Sequence[CalibrationReading],
    hydrometer_calibration_temp_c: float = DEFAULT_CALIBRATION_TEMP_C,
) -> InstrumentCalibration:
    """Prepare, fit and derive the baseline offset for one calibration session."""
    prepared = prepare_calibration_readings(readings, hydrometer_calibration_temp_c)
    result = fit_linear_calibration(prepared)
    return InstrumentCalibration(
        hydrometer_calibration_temp_c=hydrometer_calibration_temp_c,
        refractometer_baseline_offset=baseline_offset_from_fresh_juice(readings, hydrometer_calibration_temp_c),
        linear_coefficients=result.coefficients,
        result=result,
        readings_count=len(readings),
        fresh_juice_count=sum(1 for r in readings if r.is_fresh_juice),
    )
