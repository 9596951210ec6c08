import math
from datetime import datetime, timedelta, timezone

import pytest

from cidercore.defaults import DEFAULT_PRODUCT_SCHEDULES
from cidercore.errors import MeasurementValidationError
from cidercore.schedule import (
    NO_SCHEDULE_DESCRIPTION,
    get_measurement_types_for_batch,
    get_next_scheduled_measurement_due,
    get_product_measurement_schedule,
    is_measurement_needed,
    task_type_for,
)
from cidercore.schemas import BatchMeasurementOverride, MeasurementScheduleConfig

NOW = datetime(2024, 10, 1, 9, 0, 0)


def ago(days):
    return NOW - timedelta(days=days)


class TestProductSchedule:
    def test_brandy_is_monthly(self):
        s = get_product_measurement_schedule("brandy", None, True)
        assert (s.interval_days.min, s.interval_days.max) == (30, 30)
        assert s.alert_type == "check_in_reminder"
        assert "Monthly" in s.description
        assert s.measurement_types == ("sensory", "volume")
        assert not s.uses_fermentation_stages

    def test_brandy_before_first_measurement(self):
        s = get_product_measurement_schedule("brandy", None, False)
        assert s.measurement_types == ("abv",)
        assert s.description == "Monthly check (every 30 days)"

    def test_pommeau_is_quarterly(self):
        s = get_product_measurement_schedule("pommeau", None, True)
        assert s.interval_days.max == 90
        assert s.description == "Quarterly sensory & volume check (every 90 days)"

    def test_cider_follows_stage(self):
        s = get_product_measurement_schedule("cider", "mid", True)
        assert s.uses_fermentation_stages
        assert (s.interval_days.min, s.interval_days.max) == (2, 3)
        assert s.alert_type == "measurement_overdue"
        assert s.primary_measurement == "sg"

    def test_cider_without_stage_uses_unknown_frequency(self):
        s = get_product_measurement_schedule("cider", None, False)
        assert (s.interval_days.min, s.interval_days.max) == (1, 3)
        assert s.description == "Take initial measurement to establish stage"

    def test_juice_has_no_schedule(self):
        s = get_product_measurement_schedule("juice", None, True)
        assert math.isinf(s.interval_days.max)
        assert s.alert_type is None
        assert s.description == NO_SCHEDULE_DESCRIPTION

    def test_unknown_product_falls_back_to_cider(self):
        s = get_product_measurement_schedule("kombucha", "early", True)
        assert s.uses_fermentation_stages
        assert s.interval_days.max == 2

    def test_override_interval_and_types(self):
        override = BatchMeasurementOverride(interval_days=5, measurement_types=("sensory",))
        s = get_product_measurement_schedule("cider", "early", True, override=override)
        assert (s.interval_days.min, s.interval_days.max) == (5, 5)
        assert s.measurement_types == ("sensory",)
        assert s.alert_type == "measurement_overdue"

    def test_empty_override_types_keep_config(self):
        override = BatchMeasurementOverride(measurement_types=())
        s = get_product_measurement_schedule("cider", "early", True, override=override)
        assert s.measurement_types == ("sg", "ph", "temperature")

    def test_override_interval_on_fixed_product(self):
        s = get_product_measurement_schedule("brandy", None, True, override=BatchMeasurementOverride(interval_days=14))
        assert s.interval_days.max == 14
        assert s.description == "Monthly sensory check (every 14 days)"

    def test_explicit_none_alert_silences(self):
        s = get_product_measurement_schedule("brandy", None, True, override=BatchMeasurementOverride(alert_type=None))
        assert s.alert_type is None

    def test_organization_config(self):
        config = MeasurementScheduleConfig(
            initial_measurement_types=("sg",),
            ongoing_measurement_types=("sensory",),
            primary_measurement="sensory",
            uses_fermentation_stages=False,
            default_interval_days=7,
            alert_type="check_in_reminder",
        )
        s = get_product_measurement_schedule("cider", "early", True, config)
        assert s.interval_days.max == 7
        assert s.description == "Sensory check every 7 days"

    def test_types_for_batch(self):
        cfg = DEFAULT_PRODUCT_SCHEDULES["pommeau"]
        assert get_measurement_types_for_batch(cfg, False) == ("sg", "ph")
        assert get_measurement_types_for_batch(cfg, True) == ("sensory", "volume")

    def test_defaults_are_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_PRODUCT_SCHEDULES["cider"] = DEFAULT_PRODUCT_SCHEDULES["juice"]


@pytest.mark.parametrize("types,task", [
    (("sg", "ph"), "measurement_needed"),
    (("sensory", "volume"), "sensory_check_due"),
    (("sg", "sensory"), "sensory_check_due"),
    (("abv",), "check_in_due"),
    ((), "check_in_due"),
])
def test_task_type(types, task):
    assert task_type_for(types) == task


class TestMeasurementNeeded:
    def test_never_measured_cider(self):
        r = is_measurement_needed("cider", None, None, False, now=NOW)
        assert r.needed
        assert r.priority == "high"
        assert r.task_type == "measurement_needed"
        assert math.isinf(r.days_overdue)

    def test_juice_never_alerts(self):
        r = is_measurement_needed("juice", None, None, False, now=NOW)
        assert not r.needed
        assert r.priority is None

    def test_overdue_medium(self):
        r = is_measurement_needed("cider", ago(5), "mid", True, now=NOW)
        assert r.needed
        assert r.priority == "medium"
        assert r.days_overdue == 2

    def test_overdue_high(self):
        r = is_measurement_needed("cider", ago(7), "mid", True, now=NOW)
        assert r.needed
        assert r.priority == "high"
        assert r.days_overdue == 4

    def test_within_window_is_low(self):
        r = is_measurement_needed("cider", ago(2), "mid", True, now=NOW)
        assert not r.needed
        assert r.priority == "low"
        assert r.task_type == "measurement_needed"

    def test_recent_is_quiet(self):
        r = is_measurement_needed("cider", ago(1), "mid", True, now=NOW)
        assert not r.needed
        assert r.priority is None
        assert r.task_type is None

    def test_brandy_sensory_overdue(self):
        r = is_measurement_needed("brandy", ago(45), None, True, now=NOW)
        assert r.needed
        assert r.priority == "medium"
        assert r.task_type == "sensory_check_due"

    def test_silenced_by_override(self):
        r = is_measurement_needed(
            "cider", None, None, False, batch_override=BatchMeasurementOverride(alert_type=None), now=NOW
        )
        assert not r.needed


def test_next_scheduled_due():
    s = get_product_measurement_schedule("pommeau", None, True)
    assert get_next_scheduled_measurement_due(ago(10), s) == ago(10) + timedelta(days=90)
    assert get_next_scheduled_measurement_due(None, s) is None
    juice = get_product_measurement_schedule("juice", None, True)
    assert get_next_scheduled_measurement_due(ago(10), juice) is None


def test_needed_rejects_mixed_timezone_awareness():
    aware_last = datetime(2024, 9, 1, tzinfo=timezone.utc)
    with pytest.raises(MeasurementValidationError):
        is_measurement_needed("cider", aware_last, "mid", True, now=NOW)
