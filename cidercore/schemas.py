from __future__ import annotations
from datetime import datetime
from typing import Optional, List, Tuple, Literal, Annotated
from pydantic import BaseModel, Field, ConfigDict, model_validator

from .anchors import ANCHORS
from .validation import validate_consistent_timezones

# Common helpers
Gravity = Annotated[float, Field(gt=0, allow_inf_nan=False)]
PlausibleGravity = Annotated[float, Field(ge=ANCHORS["SG_MIN"], le=ANCHORS["SG_MAX"], allow_inf_nan=False)]
TemperatureC = Annotated[float, Field(ge=ANCHORS["TEMP_MIN_C"], le=ANCHORS["TEMP_MAX_C"], allow_inf_nan=False)]
NonNegative = Annotated[float, Field(ge=0)]
Positive = Annotated[float, Field(gt=0)]
PositiveInt = Annotated[int, Field(ge=1)]

InstrumentType = Literal["hydrometer", "refractometer"]
MeasurementMethod = Literal["hydrometer", "refractometer", "calculated"]
FermentationStage = Literal["early", "mid", "approaching_dry", "terminal", "unknown"]
CorrectionStrategy = Literal["temperature", "fresh_juice", "calibrated", "fallback", "uncorrected"]
AlertType = Literal["check_in_reminder", "measurement_overdue"]
MeasurementType = Literal["sg", "abv", "ph", "temperature", "sensory", "volume"]
Priority = Literal["high", "medium", "low"]
TaskType = Literal["measurement_needed", "sensory_check_due", "check_in_due"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# Calibration models
class CalibrationReading(_Frozen):
    original_gravity: Gravity
    refractometer_reading: Gravity
    hydrometer_reading: Gravity
    temperature_c: TemperatureC
    is_fresh_juice: bool = False


class PreparedCalibrationReading(_Frozen):
    """Calibration pair with the hydrometer value already temperature-corrected."""
    original_gravity: Gravity
    refractometer_reading: Gravity
    hydrometer_corrected: Gravity


class CalibrationCoefficients(_Frozen):
    """corrected = a * refractometer + b * original_gravity + c"""
    a: float
    b: float
    c: float


class Prediction(_Frozen):
    actual: float
    predicted: float
    error: float


class CalibrationResult(_Frozen):
    coefficients: CalibrationCoefficients
    r_squared: Annotated[float, Field(le=1.0)]
    max_error: NonNegative
    avg_error: NonNegative
    predictions: Tuple[Prediction, ...]


class CalibrationBundle(_Frozen):
    """Stored per-instrument calibration supplied back into every correction."""
    hydrometer_calibration_temp_c: TemperatureC = ANCHORS["HYDROMETER_CALIBRATION_TEMP_C"]
    refractometer_baseline_offset: float = 0.0
    linear_coefficients: Optional[CalibrationCoefficients] = None


class InstrumentCalibration(CalibrationBundle):
    result: CalibrationResult
    readings_count: PositiveInt
    fresh_juice_count: Annotated[int, Field(ge=0)] = 0


# Correction models
class SGCorrectionInput(_Frozen):
    instrument_type: InstrumentType
    raw_reading: Gravity
    temperature_c: Optional[TemperatureC] = None
    original_gravity: Optional[Gravity] = None
    is_fresh_juice: bool = False
    calibration: Optional[CalibrationBundle] = None

    @model_validator(mode="after")
    def _hydrometer_needs_temperature(self) -> "SGCorrectionInput":
        if self.instrument_type == "hydrometer" and self.temperature_c is None:
            raise ValueError("temperature_c is required for hydrometer readings")
        return self


class CorrectionBreakdown(_Frozen):
    temp: Optional[float] = None
    alcohol: Optional[float] = None
    baseline: Optional[float] = None

    def total(self) -> float:
        return sum(v for v in (self.temp, self.alcohol, self.baseline) if v is not None)


class SGCorrectionResult(_Frozen):
    corrected_sg: float
    raw_reading: float
    corrections: CorrectionBreakdown = CorrectionBreakdown()
    strategy: CorrectionStrategy


# Fermentation models
class FermentationMeasurement(_Frozen):
    specific_gravity: PlausibleGravity
    measurement_date: datetime
    method: Optional[MeasurementMethod] = None


class StageThresholds(_Frozen):
    early_max: Positive
    mid_max: Positive
    approaching_dry_max: Annotated[float, Field(gt=0, le=100)]

    @model_validator(mode="after")
    def _ascending(self) -> "StageThresholds":
        if not (self.early_max < self.mid_max < self.approaching_dry_max):
            raise ValueError("stage thresholds must satisfy early_max < mid_max < approaching_dry_max")
        return self


class StallSettings(_Frozen):
    enabled: bool = True
    days: Positive
    threshold: NonNegative


class MeasurementFrequency(_Frozen):
    min_days: Positive
    max_days: Positive
    description: str


class FermentationProgress(_Frozen):
    percent_fermented: float
    stage: FermentationStage
    is_stalled: bool
    days_since_last_measurement: float
    recommended_action: str
    next_measurement_due: Optional[datetime]
    is_terminal_confirmed: bool


# Scheduling models
class MeasurementScheduleConfig(_Frozen):
    initial_measurement_types: Tuple[MeasurementType, ...]
    ongoing_measurement_types: Tuple[MeasurementType, ...]
    primary_measurement: MeasurementType
    uses_fermentation_stages: bool
    default_interval_days: Optional[PositiveInt] = None
    alert_type: Optional[AlertType] = None


class BatchMeasurementOverride(_Frozen):
    """Per-batch policy; alert_type counts as set only when passed explicitly."""
    interval_days: Optional[PositiveInt] = None
    measurement_types: Optional[Tuple[MeasurementType, ...]] = None
    alert_type: Optional[AlertType] = None
    notes: Optional[str] = None


class IntervalDays(_Frozen):
    min: float
    max: float  # inf means no scheduled measurement


class ProductScheduleResult(_Frozen):
    measurement_types: Tuple[MeasurementType, ...]
    interval_days: IntervalDays
    alert_type: Optional[AlertType]
    description: str
    uses_fermentation_stages: bool
    primary_measurement: MeasurementType


class MeasurementNeededResult(_Frozen):
    needed: bool
    days_overdue: float
    priority: Optional[Priority]
    task_type: Optional[TaskType]


# Facade request models (dict inputs from UI / alerting collaborators)
class FermentationProgressRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")
    original_gravity: Optional[Gravity] = None
    current_gravity: Optional[Gravity] = None
    target_final_gravity: Optional[Gravity] = None
    measurements: List[FermentationMeasurement] = []
    stage_thresholds: Optional[StageThresholds] = None
    stall_settings: Optional[StallSettings] = None
    terminal_confirmation_hours: Positive = ANCHORS["TERMINAL_CONFIRMATION_HOURS"]
    now: Optional[datetime] = None

    @model_validator(mode="after")
    def _same_timezone_awareness(self) -> "FermentationProgressRequest":
        validate_consistent_timezones([m.measurement_date for m in self.measurements] + [self.now])
        return self


class MeasurementScheduleRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")
    product_type: Annotated[str, Field(min_length=1)]
    fermentation_stage: Optional[FermentationStage] = None
    has_initial_measurement: bool = False
    schedule_config: Optional[MeasurementScheduleConfig] = None
    batch_override: Optional[BatchMeasurementOverride] = None
    last_measurement_date: Optional[datetime] = None
    now: Optional[datetime] = None

    @model_validator(mode="after")
    def _same_timezone_awareness(self) -> "MeasurementScheduleRequest":
        validate_consistent_timezones((self.last_measurement_date, self.now), "lastMeasurementDate")
        return self
