"""
Frozen anchor set for measurement-correction and fermentation constants.

These values pin the numeric behavior of the corrections and the default
fermentation policy. Tests assert no drift relative to these values; update
this file deliberately, together with the golden tests.
"""

ANCHORS: dict[str, float | int | str] = {
    # Water density polynomial (Fahrenheit scale), f(T) = W0 + W1*T + W2*T^2 + W3*T^3
    "WATER_W0": 1.00130346,
    "WATER_W1": -1.34722124e-4,
    "WATER_W2": 2.04052596e-6,
    "WATER_W3": -2.32820948e-9,

    # Hydrometer calibration and temperature domain
    "HYDROMETER_CALIBRATION_TEMP_C": 15.56,  # 60 F
    "TEMP_NOOP_TOLERANCE_C": 0.01,
    "TEMP_MIN_C": -10.0,
    "TEMP_MAX_C": 100.0,
    "TEMP_DISPLAY_THRESHOLD_C": 2.0,

    # Terrill cubic (Brix scale)
    "TERRILL_K0": 1.001843,
    "TERRILL_OG1": -0.002318474,
    "TERRILL_OG2": -0.000007775,
    "TERRILL_OG3": -0.000000034,
    "TERRILL_FG1": 0.00574,
    "TERRILL_FG2": 0.00003344,
    "TERRILL_FG3": 0.000000086,
    "BRIX_PER_SG_POINT": 250.0,

    # Plausible ranges
    "SG_MIN": 0.98,
    "SG_MAX": 1.2,
    "BRIX_MIN": 0.0,
    "BRIX_MAX": 50.0,

    # Calibration fit
    "MIN_CALIBRATION_READINGS": 3,
    "PIVOT_EPSILON": 1e-10,

    # Fermentation stages (percent fermented)
    "STAGE_EARLY_MAX": 70.0,
    "STAGE_MID_MAX": 90.0,
    "STAGE_APPROACHING_DRY_MAX": 98.0,

    # Stall detection and terminal confirmation
    "STALL_DAYS": 3.0,
    "STALL_SG_THRESHOLD": 0.001,
    "TERMINAL_CONFIRMATION_HOURS": 48.0,

    # Fixed-interval products
    "BRANDY_INTERVAL_DAYS": 30,
    "POMMEAU_INTERVAL_DAYS": 90,
}

# Origins (free-text for docs)
ORIGINS: dict[str, str] = {
    "WATER_W0": "Published hydrometer correction polynomial, temperatures in F",
    "HYDROMETER_CALIBRATION_TEMP_C": "Most hydrometers are graduated at 60 F",
    "TERRILL_K0": "Sean Terrill cubic refractometer correction, Brix inputs",
    "STALL_SG_THRESHOLD": "Below one gravity point over 3 days counts as no progress",
    "TERMINAL_CONFIRMATION_HOURS": "Two identical hydrometer readings two days apart",
}
