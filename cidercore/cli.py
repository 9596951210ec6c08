"""
Minimal CLI for backend smoke-tests.

Usage examples:
  python -m cidercore.cli correct --input reading.json
  python -m cidercore.cli calibrate --input session.txt --output fit.json
  python -m cidercore.cli progress --input batch.json --log measurements.txt
  python -m cidercore.cli schedule --input batch.json --needed

Commands:
  - correct: corrects one raw SG reading from JSON inputs
  - calibrate: fits refractometer calibration from JSON or a semicolon text export
  - progress: fermentation progress, stage, stall and terminal status
  - schedule: product measurement schedule, optionally with the overdue check
"""
from __future__ import annotations

import argparse
import csv
import json
import logging
import os
import sys
from typing import Any, Dict, List

from . import api
from . import io as cio
from .defaults import DEFAULT_CALIBRATION_TEMP_C, anchor_drift


def _read_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _fail_on_drift() -> None:
    mismatches = anchor_drift()
    if mismatches:
        raise SystemExit("Default drift detected (anchors vs runtime):\n" + "\n".join(" - " + m for m in mismatches))


def _write_output(obj: Any, path: str | None) -> None:
    if not path:
        json.dump(obj, sys.stdout, ensure_ascii=False, allow_nan=False)
        sys.stdout.write("\n")
        return
    ext = os.path.splitext(path)[1].lower()
    if ext == ".json":
        with open(path, "w", encoding="utf-8") as f:
            json.dump(obj, f, ensure_ascii=False, allow_nan=False)
    elif ext == ".csv":
        # Nested values are written as JSON text in their cell
        rows: List[Dict[str, Any]] = obj if isinstance(obj, list) else [obj]
        keys: List[str] = []
        for r in rows:
            keys.extend(k for k in r if k not in keys)
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(keys)
            for r in rows:
                w.writerow([
                    json.dumps(r[k], ensure_ascii=False, allow_nan=False) if isinstance(r.get(k), (dict, list)) else r.get(k, "")
                    for k in keys
                ])
    else:
        raise SystemExit(f"Unsupported output extension: {ext} (use .json or .csv)")


def _load_calibration_readings(path: str) -> List[Dict[str, Any]]:
    if os.path.splitext(path)[1].lower() == ".json":
        return _read_json(path)
    return cio.parse_calibration_readings(_read_text(path))


def cmd_correct(args: argparse.Namespace) -> int:
    if args.fail_on_drift:
        _fail_on_drift()
    out = api.correct_reading(_read_json(args.input))
    _write_output(out, args.output)
    return 0


def cmd_calibrate(args: argparse.Namespace) -> int:
    if args.fail_on_drift:
        _fail_on_drift()
    readings = _load_calibration_readings(args.input)
    out = api.fit_calibration(readings, args.calibration_temp)
    _write_output(out, args.output)
    return 0


def cmd_progress(args: argparse.Namespace) -> int:
    if args.fail_on_drift:
        _fail_on_drift()
    data = _read_json(args.input)
    if args.log:
        data = {**data, "measurements": cio.parse_measurement_log(_read_text(args.log))}
    out = api.fermentation_progress(data)
    _write_output(out, args.output)
    return 0


def cmd_schedule(args: argparse.Namespace) -> int:
    if args.fail_on_drift:
        _fail_on_drift()
    data = _read_json(args.input)
    out = api.measurement_schedule(data)
    if args.needed:
        out["needed"] = api.measurement_needed(data)
    _write_output(out, args.output)
    return 0


def _add_common(p: argparse.ArgumentParser) -> None:
    p.add_argument("--output", required=False, help="Output file (.json or .csv)")
    p.add_argument("--fail-on-drift", action="store_true", help="Fail if runtime defaults differ from anchors")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cidercore.cli", description="Cider SG correction and fermentation CLI")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_corr = sub.add_parser("correct", help="Correct a raw hydrometer or refractometer reading from JSON input")
    p_corr.add_argument("--input", required=True, help="Path to JSON input file")
    _add_common(p_corr)
    p_corr.set_defaults(func=cmd_correct)

    p_cal = sub.add_parser("calibrate", help="Fit refractometer calibration from paired readings")
    p_cal.add_argument("--input", required=True, help="Path to JSON list or semicolon text export")
    p_cal.add_argument("--calibration-temp", type=float, default=DEFAULT_CALIBRATION_TEMP_C,
                       help="Hydrometer calibration temperature [°C]")
    _add_common(p_cal)
    p_cal.set_defaults(func=cmd_calibrate)

    p_prog = sub.add_parser("progress", help="Fermentation progress from JSON batch input")
    p_prog.add_argument("--input", required=True, help="Path to JSON input file")
    p_prog.add_argument("--log", required=False, help="Semicolon measurement log replacing 'measurements'")
    _add_common(p_prog)
    p_prog.set_defaults(func=cmd_progress)

    p_sch = sub.add_parser("schedule", help="Product measurement schedule from JSON batch input")
    p_sch.add_argument("--input", required=True, help="Path to JSON input file")
    p_sch.add_argument("--needed", action="store_true", help="Include the overdue check")
    _add_common(p_sch)
    p_sch.set_defaults(func=cmd_schedule)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
