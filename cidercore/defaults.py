"""
Centralized default configuration for corrections and fermentation policy.

Values are sourced from anchors.ANCHORS. Every object here is immutable
(frozen models, read-only mappings) and is passed explicitly into the
functions that use it; callers supply alternatives per organization or batch.
"""
from types import MappingProxyType
from typing import Mapping

from .anchors import ANCHORS
from .schemas import MeasurementScheduleConfig, StageThresholds, StallSettings

# --- Hydrometer temperature correction ---
# Source: hydrometers graduated at 60 F
DEFAULT_CALIBRATION_TEMP_C: float = float(ANCHORS["HYDROMETER_CALIBRATION_TEMP_C"])  # [°C]
DEFAULT_CALIBRATION_TEMP_F: float = 60.0  # [°F]
TEMP_NOOP_TOLERANCE_C: float = float(ANCHORS["TEMP_NOOP_TOLERANCE_C"])
TEMP_DISPLAY_THRESHOLD_C: float = float(ANCHORS["TEMP_DISPLAY_THRESHOLD_C"])

# --- Calibration fit ---
MIN_CALIBRATION_READINGS: int = int(ANCHORS["MIN_CALIBRATION_READINGS"])
PIVOT_EPSILON: float = float(ANCHORS["PIVOT_EPSILON"])

# --- Fermentation stages: percent fermented cut points (70/90/98) ---
DEFAULT_STAGE_THRESHOLDS = StageThresholds(
    early_max=float(ANCHORS["STAGE_EARLY_MAX"]),
    mid_max=float(ANCHORS["STAGE_MID_MAX"]),
    approaching_dry_max=float(ANCHORS["STAGE_APPROACHING_DRY_MAX"]),
)

# --- Stall: less than 0.001 SG change over at least 3 days ---
DEFAULT_STALL_SETTINGS = StallSettings(
    enabled=True,
    days=float(ANCHORS["STALL_DAYS"]),
    threshold=float(ANCHORS["STALL_SG_THRESHOLD"]),
)

DEFAULT_TERMINAL_CONFIRMATION_HOURS: float = float(ANCHORS["TERMINAL_CONFIRMATION_HOURS"])

# Expected final gravity per cider style
DEFAULT_TARGET_FG_BY_STYLE: Mapping[str, float] = MappingProxyType({
    "dry": 0.998,
    "semi-dry": 1.005,
    "semi-sweet": 1.012,
    "sweet": 1.020,
})

# --- Product measurement schedules ---
DEFAULT_PRODUCT_SCHEDULES: Mapping[str, MeasurementScheduleConfig] = MappingProxyType({
    "cider": MeasurementScheduleConfig(
        initial_measurement_types=("sg", "ph", "temperature"),
        ongoing_measurement_types=("sg", "ph", "temperature"),
        primary_measurement="sg",
        uses_fermentation_stages=True,
        default_interval_days=None,
        alert_type="measurement_overdue",
    ),
    "perry": MeasurementScheduleConfig(
        initial_measurement_types=("sg", "ph", "temperature"),
        ongoing_measurement_types=("sg", "ph", "temperature"),
        primary_measurement="sg",
        uses_fermentation_stages=True,
        default_interval_days=None,
        alert_type="measurement_overdue",
    ),
    "brandy": MeasurementScheduleConfig(
        initial_measurement_types=("abv",),
        ongoing_measurement_types=("sensory", "volume"),
        primary_measurement="sensory",
        uses_fermentation_stages=False,
        default_interval_days=int(ANCHORS["BRANDY_INTERVAL_DAYS"]),
        alert_type="check_in_reminder",
    ),
    "pommeau": MeasurementScheduleConfig(
        initial_measurement_types=("sg", "ph"),
        ongoing_measurement_types=("sensory", "volume"),
        primary_measurement="sensory",
        uses_fermentation_stages=False,
        default_interval_days=int(ANCHORS["POMMEAU_INTERVAL_DAYS"]),
        alert_type="check_in_reminder",
    ),
    "juice": MeasurementScheduleConfig(
        initial_measurement_types=("sg", "ph"),
        ongoing_measurement_types=(),
        primary_measurement="sg",
        uses_fermentation_stages=False,
        default_interval_days=None,
        alert_type=None,
    ),
})


def anchor_drift() -> list[str]:
    """Return human-readable mismatches between the anchors and the runtime defaults."""
    guarded = {
        "HYDROMETER_CALIBRATION_TEMP_C": DEFAULT_CALIBRATION_TEMP_C,
        "STAGE_EARLY_MAX": DEFAULT_STAGE_THRESHOLDS.early_max,
        "STAGE_MID_MAX": DEFAULT_STAGE_THRESHOLDS.mid_max,
        "STAGE_APPROACHING_DRY_MAX": DEFAULT_STAGE_THRESHOLDS.approaching_dry_max,
        "STALL_DAYS": DEFAULT_STALL_SETTINGS.days,
        "STALL_SG_THRESHOLD": DEFAULT_STALL_SETTINGS.threshold,
        "TERMINAL_CONFIRMATION_HOURS": DEFAULT_TERMINAL_CONFIRMATION_HOURS,
        "BRANDY_INTERVAL_DAYS": DEFAULT_PRODUCT_SCHEDULES["brandy"].default_interval_days,
        "POMMEAU_INTERVAL_DAYS": DEFAULT_PRODUCT_SCHEDULES["pommeau"].default_interval_days,
    }
    mismatches: list[str] = []
    for k, runtime in guarded.items():
        if float(ANCHORS[k]) != float(runtime):
            mismatches.append(f"{k}: anchors={ANCHORS[k]!r} vs runtime={runtime!r}")
    return mismatches
