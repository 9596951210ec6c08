import math
from datetime import datetime, timedelta, timezone

import pytest

from cidercore.defaults import DEFAULT_STAGE_THRESHOLDS
from cidercore.errors import DomainConsistencyError, MeasurementValidationError
from cidercore.fermentation import (
    ACTION_CONFIRM_TERMINAL,
    ACTION_RECORD_GRAVITIES,
    ACTION_STALLED,
    analyze_fermentation_progress,
    calculate_fermentation_progress,
    calculate_percent_fermented,
    detect_stall,
    determine_stage,
    get_alert_priority,
    get_days_since_last_measurement,
    get_next_measurement_due,
    get_recommended_measurement_frequency,
    is_measurement_due,
    is_terminal_confirmed,
    target_final_gravity_for_style,
)
from cidercore.schemas import FermentationMeasurement, StageThresholds, StallSettings

NOW = datetime(2024, 10, 1, 12, 0, 0)


def m(sg, days_ago=0.0, hours_ago=0.0, method=None):
    return FermentationMeasurement(
        specific_gravity=sg,
        measurement_date=NOW - timedelta(days=days_ago, hours=hours_ago),
        method=method,
    )


class TestPercentAndStage:
    def test_percent_fermented(self):
        assert calculate_percent_fermented(1.050, 1.020, 0.998) == pytest.approx(57.7)

    def test_percent_may_exceed_100(self):
        assert calculate_percent_fermented(1.050, 0.996, 0.998) > 100

    def test_inconsistent_gravities_degrade_to_zero(self):
        assert calculate_percent_fermented(1.040, 1.045, 0.998) == 0.0
        assert calculate_percent_fermented(1.000, 1.000, 1.005) == 0.0

    def test_strict_mode_raises(self):
        with pytest.raises(DomainConsistencyError):
            calculate_percent_fermented(1.040, 1.045, 0.998, strict=True)
        with pytest.raises(DomainConsistencyError):
            calculate_percent_fermented(1.000, 1.000, 1.005, strict=True)

    def test_rejects_non_positive_gravity(self):
        with pytest.raises(MeasurementValidationError):
            calculate_percent_fermented(1.050, 0.0, 0.998)

    @pytest.mark.parametrize("percent,stage", [
        (-1.0, "unknown"), (0.0, "early"), (57.7, "early"), (69.9, "early"), (70.0, "mid"),
        (89.9, "mid"), (90.0, "approaching_dry"), (97.9, "approaching_dry"), (98.0, "terminal"), (120.0, "terminal"),
    ])
    def test_stage_boundaries(self, percent, stage):
        assert determine_stage(percent) == stage

    @pytest.mark.parametrize("thresholds", [
        DEFAULT_STAGE_THRESHOLDS,
        StageThresholds(early_max=50, mid_max=80, approaching_dry_max=95),
        StageThresholds(early_max=10, mid_max=11, approaching_dry_max=100),
    ])
    def test_stage_is_monotonic(self, thresholds):
        order = ["unknown", "early", "mid", "approaching_dry", "terminal"]
        ranks = [order.index(determine_stage(x / 10.0, thresholds)) for x in range(-50, 1200)]
        assert ranks == sorted(ranks)

    def test_thresholds_must_ascend(self):
        with pytest.raises(ValueError):
            StageThresholds(early_max=90, mid_max=70, approaching_dry_max=98)

    def test_progress_tuple(self):
        assert calculate_fermentation_progress(1.050, 1.020, 0.998) == (pytest.approx(57.7), "early")

    def test_style_targets(self):
        assert target_final_gravity_for_style("Dry") == 0.998
        assert target_final_gravity_for_style("semi-sweet") == 1.012
        assert target_final_gravity_for_style("ice cider") is None


class TestStall:
    def test_below_threshold_over_three_days_is_stalled(self):
        assert detect_stall([m(1.0100), m(1.0109, days_ago=3)])

    def test_above_threshold_is_not_stalled(self):
        assert not detect_stall([m(1.0100), m(1.0111, days_ago=3)])

    def test_readings_too_close_in_time(self):
        assert not detect_stall([m(1.0100), m(1.0100, days_ago=2.9)])

    def test_order_independent(self):
        assert detect_stall([m(1.0109, days_ago=3), m(1.0100)])

    def test_needs_two_readings(self):
        assert not detect_stall([m(1.0100)])
        assert not detect_stall([])

    def test_disabled(self):
        settings = StallSettings(enabled=False, days=3, threshold=0.001)
        assert not detect_stall([m(1.0100), m(1.0100, days_ago=5)], settings)

    def test_custom_settings(self):
        settings = StallSettings(days=1, threshold=0.002)
        assert detect_stall([m(1.0100), m(1.0115, days_ago=1)], settings)


class TestTerminalConfirmation:
    def test_47_hours_is_unconfirmed(self):
        assert not is_terminal_confirmed([m(0.998), m(0.998, hours_ago=47)])

    def test_48_hours_is_confirmed(self):
        assert is_terminal_confirmed([m(0.998), m(0.998, hours_ago=48)])

    def test_readings_must_match(self):
        assert not is_terminal_confirmed([m(0.998), m(0.999, hours_ago=72)])

    def test_refractometer_readings_ignored(self):
        history = [m(0.998, method="refractometer"), m(0.998, hours_ago=50, method="hydrometer")]
        assert not is_terminal_confirmed(history)
        history.append(m(0.998, hours_ago=100, method="hydrometer"))
        assert is_terminal_confirmed(history)


class TestTiming:
    def test_frequencies(self):
        assert get_recommended_measurement_frequency("early").max_days == 2
        assert get_recommended_measurement_frequency("terminal").min_days == 7
        assert get_recommended_measurement_frequency(None).description.startswith("Take initial")

    def test_days_since_is_floored(self):
        assert get_days_since_last_measurement(NOW - timedelta(days=2, hours=23), NOW) == 2
        assert math.isinf(get_days_since_last_measurement(None, NOW))

    def test_next_due(self):
        last = NOW - timedelta(days=1)
        assert get_next_measurement_due(last, "mid", NOW) == last + timedelta(days=3)
        assert get_next_measurement_due(None, "mid", NOW) == NOW

    def test_is_due(self):
        assert is_measurement_due(None, "early", NOW)
        assert is_measurement_due(NOW - timedelta(days=2), "early", NOW)
        assert not is_measurement_due(NOW - timedelta(days=1), "early", NOW)


class TestAnalyze:
    def test_missing_gravities(self):
        progress = analyze_fermentation_progress(1.050, None, 0.998, now=NOW)
        assert progress.stage == "unknown"
        assert progress.recommended_action == ACTION_RECORD_GRAVITIES
        assert progress.next_measurement_due == NOW
        assert math.isinf(progress.days_since_last_measurement)

    def test_stalled(self):
        progress = analyze_fermentation_progress(
            1.050, 1.020, 0.998, [m(1.0200), m(1.0205, days_ago=4)], now=NOW
        )
        assert progress.is_stalled
        assert progress.recommended_action == ACTION_STALLED
        assert get_alert_priority(progress) == "high"

    def test_terminal_unconfirmed(self):
        progress = analyze_fermentation_progress(1.050, 0.998, 0.998, [m(0.998)], now=NOW)
        assert progress.stage == "terminal"
        assert progress.percent_fermented == 100.0
        assert not progress.is_terminal_confirmed
        assert progress.recommended_action == ACTION_CONFIRM_TERMINAL

    def test_terminal_plateau_is_not_a_stall(self):
        progress = analyze_fermentation_progress(
            1.050, 0.998, 0.998, [m(0.998), m(0.998, days_ago=3)], now=NOW
        )
        assert not progress.is_stalled
        assert progress.is_terminal_confirmed
        assert progress.recommended_action == "Next measurement in 14 day(s)"
        assert get_alert_priority(progress) is None

    def test_measurement_due(self):
        progress = analyze_fermentation_progress(1.050, 1.030, 0.998, [m(1.030, days_ago=3)], now=NOW)
        assert progress.stage == "early"
        assert progress.recommended_action == "Measurement due - Active fermentation - measure frequently"
        assert progress.days_since_last_measurement == 3
        assert get_alert_priority(progress) == "medium"

    def test_next_measurement_countdown(self):
        progress = analyze_fermentation_progress(
            1.050, 1.004, 0.998, [m(1.004, hours_ago=12)], now=NOW
        )
        assert progress.stage == "mid"
        assert progress.recommended_action == "Next measurement in 3 day(s)"
        assert progress.next_measurement_due == NOW - timedelta(hours=12) + timedelta(days=3)

    def test_inconsistent_history_degrades(self):
        progress = analyze_fermentation_progress(1.040, 1.045, 0.998, [m(1.045)], now=NOW)
        assert progress.percent_fermented == 0.0
        assert progress.stage == "early"


class TestTimezoneAwareness:
    def test_mixed_history_is_rejected(self):
        aware = FermentationMeasurement(specific_gravity=1.010, measurement_date=datetime(2024, 10, 5, tzinfo=timezone.utc))
        with pytest.raises(MeasurementValidationError):
            detect_stall([aware, m(1.0105, days_ago=4)])

    def test_days_since_with_mismatched_now(self):
        with pytest.raises(MeasurementValidationError):
            get_days_since_last_measurement(datetime(2024, 10, 1, tzinfo=timezone.utc), NOW)

    def test_analyze_with_naive_now_and_aware_history(self):
        aware = FermentationMeasurement(specific_gravity=1.020, measurement_date=datetime(2024, 9, 30, tzinfo=timezone.utc))
        with pytest.raises(MeasurementValidationError):
            analyze_fermentation_progress(1.050, 1.020, 0.998, [aware], now=NOW)

    def test_all_aware_is_accepted(self):
        utc_now = NOW.replace(tzinfo=timezone.utc)
        aware = FermentationMeasurement(specific_gravity=1.020, measurement_date=utc_now - timedelta(days=1))
        progress = analyze_fermentation_progress(1.050, 1.020, 0.998, [aware], now=utc_now)
        assert progress.days_since_last_measurement == 1


@pytest.mark.parametrize("og,sg,fg", [(1.050, 1.35, 0.998), (1.050, 0.95, 0.998), (1.25, 1.020, 0.998)])
def test_analyze_rejects_implausible_gravity(og, sg, fg):
    with pytest.raises(MeasurementValidationError):
        analyze_fermentation_progress(og, sg, fg, now=NOW)
