from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
from pathlib import Path

from ..solvers import Adapter, available_solvers, build_specs
from .charts import render_comparison_chart
from .collector import ComparisonTable
from .config import BenchmarkPlan, FixedPolicy, load_plan, validate_policy
from .errors import BenchmarkError, PlanError
from .harness import compare

LOGGER = logging.getLogger("solverbench.benchmark")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Quantum solver benchmark harness")
    parser.add_argument(
        "--plan-path",
        default=os.environ.get("BENCHMARK_PLAN_PATH"),
        help="Optional JSON file describing a custom benchmark plan",
    )
    parser.add_argument(
        "--output-dir",
        default=os.environ.get("BENCHMARK_OUTPUT_DIR", "benchmark-results"),
        help="Directory to store benchmark artefacts (chart, CSV and manifest)",
    )
    parser.add_argument(
        "--solvers",
        default=os.environ.get("BENCHMARK_SOLVERS"),
        help="Comma-separated list of solvers overriding the plan",
    )
    parser.add_argument(
        "--workloads",
        default=os.environ.get("BENCHMARK_WORKLOADS"),
        help="Comma-separated list of workload names to keep from the plan",
    )
    parser.add_argument(
        "--repeat",
        type=int,
        help="Override the plan policy with a fixed number of timed samples",
    )
    parser.add_argument(
        "--log-scale",
        action="store_true",
        help="Use a logarithmic time axis in the comparison chart",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the planned workload/solver matrix without executing it",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("BENCHMARK_LOG_LEVEL", "INFO"),
        help="Logging level",
    )
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _split(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def apply_overrides(plan: BenchmarkPlan, args: argparse.Namespace) -> BenchmarkPlan:
    changes: dict[str, object] = {}

    solvers = _split(args.solvers)
    if solvers:
        known = available_solvers()
        unknown = [name for name in solvers if name not in known]
        if unknown:
            raise PlanError(f"unknown solver(s): {', '.join(unknown)}")
        changes["solvers"] = solvers

    keep = _split(args.workloads)
    if keep:
        missing = [name for name in keep if name not in {w.name for w in plan.workloads}]
        if missing:
            raise PlanError(f"unknown workload(s): {', '.join(missing)}")
        changes["workloads"] = [w for w in plan.workloads if w.name in keep]

    if args.repeat is not None:
        changes["policy"] = FixedPolicy(count=args.repeat)

    return dataclasses.replace(plan, **changes) if changes else plan


def execute_plan(
    plan: BenchmarkPlan,
    adapters: dict[str, Adapter] | None = None,
) -> ComparisonTable:
    """Benchmark every workload/solver pair, collecting failures per pair."""
    validate_policy(plan.policy)
    table = ComparisonTable()
    for workload in plan:
        LOGGER.info("Executing workload: %s (%s)", workload.name, workload.describe())
        specs = []
        for entry in build_specs(workload, plan.solvers, adapters=adapters):
            if isinstance(entry, BenchmarkError):
                LOGGER.warning(table.record_failure(entry.workload, entry.solver, entry))
                continue
            specs.append(entry)
        compare(specs, plan.policy, table=table)
    return table


def write_artifacts(
    plan: BenchmarkPlan,
    table: ComparisonTable,
    output_dir: Path,
    log_scale: bool = False,
) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)

    df_path = output_dir / "results.csv"
    table.build_dataframe().to_csv(df_path, index=False)
    LOGGER.info("Saved %d results to %s", len(table), df_path)

    chart_path = render_comparison_chart(
        table, output_dir / plan.chart_filename, plan.chart_title, log_scale=log_scale
    )

    manifest = {
        "label": plan.label,
        "chart": str(chart_path),
        "results": str(df_path),
        "mean_seconds": table.summary(),
        "unavailable": table.failures(),
    }
    manifest_path = output_dir / "benchmark_manifest.json"
    with open(manifest_path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2)
    LOGGER.info("Benchmark manifest written to %s", manifest_path)
    return manifest_path


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        plan = load_plan(args.plan_path, available_solvers())
        plan = apply_overrides(plan, args)
        validate_policy(plan.policy)
    except BenchmarkError as exc:
        LOGGER.error("Invalid benchmark plan: %s", exc)
        return 2

    if args.dry_run:
        _print_plan(plan)
        return 0

    output_dir = Path(args.output_dir)
    LOGGER.info("Benchmark output directory: %s", output_dir)
    LOGGER.info("Solvers: %s", ", ".join(plan.solvers))

    table = execute_plan(plan)
    write_artifacts(plan, table, output_dir, log_scale=args.log_scale)

    for message in table.failures():
        print(message, file=sys.stderr)
    return 0 if len(table) else 1


def _print_plan(plan: BenchmarkPlan) -> None:
    print(f"Plan: {plan.label} ({plan.description or 'no description'})")
    print(f"  policy: {plan.policy}")
    for workload in plan:
        print(f"  Workload: {workload.name} [{workload.describe()}]")
        for solver in plan.solvers:
            print(f"    - {solver}")


if __name__ == "__main__":
    sys.exit(main())
