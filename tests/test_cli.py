import csv
import json

import pytest
from pydantic import ValidationError

from cidercore.cli import _write_output, main


def _write_json(path, obj):
    path.write_text(json.dumps(obj), encoding="utf-8")
    return str(path)


def test_correct_to_stdout(tmp_path, capsys):
    inp = _write_json(tmp_path / "reading.json", {
        "instrument_type": "refractometer", "raw_reading": 1.020, "original_gravity": 1.050,
    })
    assert main(["correct", "--input", inp, "--fail-on-drift"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["strategy"] == "fallback"
    assert out["corrected_sg"] == pytest.approx(1.0011)


def test_calibrate_from_text_export(tmp_path):
    session = tmp_path / "session.txt"
    session.write_text(
        "OG;refractometer;hydrometer;temperature_C;fresh\n"
        "1,050;1,052;1,050;15,56;yes\n"
        "1,050;1,030;1,0105;15,56\n"
        "1,060;1,035;1,0125;15,56\n"
        "1,055;1,020;0,9975;15,56\n"
        "1,045;1,025;1,0065;15,56\n",
        encoding="utf-8",
    )
    out_path = tmp_path / "fit.json"
    assert main(["calibrate", "--input", str(session), "--output", str(out_path)]) == 0
    fit = json.loads(out_path.read_text(encoding="utf-8"))
    assert fit["readings_count"] == 5
    assert fit["fresh_juice_count"] == 1
    assert fit["refractometer_baseline_offset"] == pytest.approx(0.002)


def test_progress_with_measurement_log_to_csv(tmp_path):
    inp = _write_json(tmp_path / "batch.json", {
        "original_gravity": 1.050,
        "current_gravity": 1.020,
        "target_final_gravity": 0.998,
        "now": "2024-10-05T09:00:00",
    })
    log = tmp_path / "log.txt"
    log.write_text("2024-10-05T08:00;1,020\n2024-10-01T08:00;1,0205\n", encoding="utf-8")
    out_path = tmp_path / "progress.csv"
    assert main(["progress", "--input", inp, "--log", str(log), "--output", str(out_path)]) == 0
    with open(out_path, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 1
    assert rows[0]["stage"] == "early"
    assert rows[0]["is_stalled"] == "True"


def test_schedule_with_needed(tmp_path, capsys):
    inp = _write_json(tmp_path / "batch.json", {
        "product_type": "pommeau",
        "has_initial_measurement": True,
        "last_measurement_date": "2024-01-01T00:00:00",
        "now": "2024-05-01T00:00:00",
    })
    assert main(["schedule", "--input", inp, "--needed"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["description"].startswith("Quarterly")
    assert out["needed"]["needed"] is True
    assert out["needed"]["task_type"] == "sensory_check_due"


def test_unsupported_output_extension(tmp_path):
    inp = _write_json(tmp_path / "reading.json", {"instrument_type": "refractometer", "raw_reading": 1.020})
    with pytest.raises(SystemExit):
        main(["correct", "--input", inp, "--output", str(tmp_path / "out.xlsx")])


def test_fail_on_drift_detects_mismatch(tmp_path, monkeypatch):
    monkeypatch.setattr("cidercore.cli.anchor_drift", lambda: ["STALL_DAYS: anchors=3.0 vs runtime=4.0"])
    inp = _write_json(tmp_path / "reading.json", {"instrument_type": "refractometer", "raw_reading": 1.020})
    with pytest.raises(SystemExit, match="drift"):
        main(["correct", "--input", inp, "--fail-on-drift"])


def test_progress_log_with_aware_now_is_rejected(tmp_path):
    inp = _write_json(tmp_path / "batch.json", {
        "original_gravity": 1.050,
        "current_gravity": 1.020,
        "target_final_gravity": 0.998,
        "now": "2024-10-05T09:00:00Z",
    })
    log = tmp_path / "log.txt"
    log.write_text("2024-10-05T08:00;1,020\n2024-10-01T08:00;1,0205\n", encoding="utf-8")
    with pytest.raises(ValidationError):
        main(["progress", "--input", inp, "--log", str(log)])


def test_schedule_never_measured_writes_strict_json(tmp_path, capsys):
    inp = _write_json(tmp_path / "batch.json", {"product_type": "cider", "has_initial_measurement": False})
    assert main(["schedule", "--input", inp, "--needed"]) == 0
    text = capsys.readouterr().out
    assert "Infinity" not in text
    out = json.loads(text)
    assert out["needed"]["days_overdue"] is None
    assert out["needed"]["priority"] == "high"


def test_write_output_refuses_non_finite():
    with pytest.raises(ValueError):
        _write_output({"days_overdue": float("inf")}, None)
