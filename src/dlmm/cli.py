"""Command-line entry point: run a simulation and export its outputs."""

import argparse
import logging
import sys
from typing import List, Optional

from .analysis.scenarios import SCENARIO_LIBRARY, ScenarioRunner
from .config.loader import load_config
from .reporting.export import export_csv, export_json, export_liquidity_plan
from .simulation.runner import STATUS_FAILED, SimulationRunner
from .simulation.state import SimulationCheckpoint
from .validation.sanity_checks import validate_simulation_results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dlmm-workbench",
        description="Replay a seeded trade stream against a bin liquidity grid",
    )
    parser.add_argument("--config", help="YAML config (defaults to the bundled defaults.yaml)")
    parser.add_argument("--preset", choices=sorted(SCENARIO_LIBRARY), help="Apply a named preset")
    parser.add_argument("--seed", type=int, help="Override runtime.seed")
    parser.add_argument("--duration", type=float, help="Override runtime.duration_sec")
    parser.add_argument("--resume", help="Checkpoint JSON to continue from")
    parser.add_argument("--checkpoint", help="Write the final checkpoint to this path")
    parser.add_argument("--csv", help="Write the series as CSV")
    parser.add_argument("--json", help="Write the full result as JSON")
    parser.add_argument("--plan", help="Write the liquidity plan as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    if args.preset:
        config = ScenarioRunner(config).apply_preset(args.preset)
    if args.seed is not None:
        config.runtime.seed = args.seed
    if args.duration is not None:
        config.runtime.duration_sec = args.duration

    resume_from = SimulationCheckpoint.load(args.resume) if args.resume else None
    result = SimulationRunner(config).run(resume_from=resume_from)

    for warning in validate_simulation_results(result):
        print(f"[{warning.severity}] {warning.message}" + (f" - {warning.details}" if warning.details else ""))

    fm = result.final_metrics
    print(
        f"{config.pair.x_symbol}/{config.pair.y_symbol}: {result.status}, "
        f"{fm['num_points']} events, final price {fm['final_price']:.6f} "
        f"(x{fm['final_price_norm']:.4f}), freeze={fm['final_freeze']}"
    )

    if args.csv:
        export_csv(result, args.csv)
    if args.json:
        export_json(result, args.json)
    if args.plan:
        export_liquidity_plan(config, args.plan)
    if args.checkpoint:
        result.checkpoint.save(args.checkpoint)

    return 1 if result.status == STATUS_FAILED else 0


if __name__ == "__main__":
    sys.exit(main())
