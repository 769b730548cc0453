"""Entry point: load a bilateral force-plate JSON, run the session pipeline, print metrics."""
import argparse
import logging
from pathlib import Path

from forceplate.config import TestType, default_parameters
from forceplate.data import load_trial
from forceplate.export import build_payload, export_json
from forceplate.pipeline import SessionPipeline


def main() -> None:
    parser = argparse.ArgumentParser(description="Force Plate Analysis")
    parser.add_argument(
        "file",
        help="Path to raw force-plate JSON",
    )
    parser.add_argument(
        "--test-type",
        type=str,
        default=None,
        metavar="CODE",
        help="Test type code (CMJ, SJ, DJ, IMTP, BALANCE); default: the file's test_type",
    )
    parser.add_argument(
        "--bodyweight",
        type=float,
        default=None,
        metavar="N",
        help="Athlete bodyweight in N (default: measured from the weighing window)",
    )
    parser.add_argument(
        "--filter",
        type=float,
        default=None,
        metavar="HZ",
        help="Butterworth low-pass cutoff in Hz instead of the moving average (e.g. 50)",
    )
    parser.add_argument(
        "--smoothing",
        type=int,
        default=None,
        metavar="N",
        help="Moving-average window in samples (default: per test type)",
    )
    parser.add_argument(
        "--export",
        type=str,
        default=None,
        metavar="PATH",
        help="Export the result payload as JSON to PATH",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log phase transitions and filter choices",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    trial = load_trial(Path(args.file))
    test_type = TestType.from_code(args.test_type or trial.test_type)
    overrides = {"sampling_rate_hz": trial.sample_rate}
    if args.filter is not None:
        overrides["filter_cutoff_hz"] = args.filter
    if args.smoothing is not None:
        overrides["smoothing_window"] = args.smoothing
    params = default_parameters(test_type, **overrides)

    bodyweight = args.bodyweight if args.bodyweight is not None else trial.bodyweight_n
    pipeline = SessionPipeline(params, bodyweight_n=bodyweight, athlete_id=trial.athlete_id)
    result = pipeline.process(trial.samples())

    print(f"Athlete: {trial.athlete_id}  Test: {test_type.value}")
    print(f"Bodyweight: {result.bodyweight_n:.1f} N")
    if not result.validity.is_valid:
        print(f"Validity flags: {result.validity.flags}")
    print("Phases:")
    for event in result.phases:
        print(f"  {event.phase.value}: sample {event.sample_index} ({event.sample_index / trial.sample_rate:.3f} s)")
    if result.jump_height_method is not None:
        print(f"Jump height method: {result.jump_height_method.value}")
    print("Metrics:")
    for k, val in sorted(result.metrics.items()):
        band = result.quality.get(k)
        print(f"  {k}: {val:.4f}" + (f"  [{band.value}]" if band is not None else ""))
    if result.unavailable:
        print("Unavailable:")
        for k, reason in sorted(result.unavailable.items()):
            print(f"  {k}: {reason}")

    if args.export:
        export_json(build_payload(result), Path(args.export))
        print(f"Exported result JSON to {args.export}")


if __name__ == "__main__":
    main()
