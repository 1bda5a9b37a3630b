from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence, Union

from ..workloads import WORKLOAD_KINDS, WorkloadConfig
from .errors import PlanError, PolicyViolation


@dataclass(frozen=True)
class FixedPolicy:
    """Take exactly ``count`` timed samples."""

    count: int


@dataclass(frozen=True)
class AdaptivePolicy:
    """Sample until the minimum is met and either budget says enough.

    Sampling continues past ``min_samples`` while the accumulated timed
    duration is below ``max_total_seconds`` and the mean sample is shorter
    than ``min_sample_seconds``.
    """

    min_samples: int
    max_total_seconds: float
    min_sample_seconds: float = 0.001
    max_samples: Optional[int] = None


RepetitionPolicy = Union[FixedPolicy, AdaptivePolicy]


def _require_positive(label: str, value: float) -> None:
    # NaN compares false against everything; check for the valid range.
    if not (math.isfinite(value) and value > 0):
        raise PolicyViolation(f"{label} must be a finite number > 0, got {value}")


def validate_policy(policy: RepetitionPolicy) -> None:
    if isinstance(policy, FixedPolicy):
        _require_positive("fixed policy count", policy.count)
        return
    if isinstance(policy, AdaptivePolicy):
        _require_positive("adaptive policy min_samples", policy.min_samples)
        _require_positive("adaptive policy max_total_seconds", policy.max_total_seconds)
        _require_positive("adaptive policy min_sample_seconds", policy.min_sample_seconds)
        if policy.max_samples is not None:
            _require_positive("adaptive policy max_samples", policy.max_samples)
            if policy.max_samples < policy.min_samples:
                raise PolicyViolation("adaptive policy max_samples must be >= min_samples")
        return
    raise PolicyViolation(f"unsupported repetition policy: {policy!r}")


def policy_from_dict(data: dict[str, Any]) -> RepetitionPolicy:
    if not isinstance(data, dict):
        raise PlanError(f"policy must be a JSON object, got {type(data).__name__}")
    mode = data.get("mode", "fixed")
    try:
        if mode == "fixed":
            return FixedPolicy(count=int(data["count"]))
        if mode == "adaptive":
            max_samples = data.get("max_samples")
            return AdaptivePolicy(
                min_samples=int(data["min_samples"]),
                max_total_seconds=float(data["max_total_seconds"]),
                min_sample_seconds=float(data.get("min_sample_seconds", 0.001)),
                max_samples=int(max_samples) if max_samples is not None else None,
            )
    except KeyError as exc:
        raise PlanError(f"policy of mode {mode!r} is missing field {exc.args[0]!r}") from exc
    except (TypeError, ValueError, OverflowError) as exc:
        raise PlanError(f"policy of mode {mode!r} has an invalid value: {exc}") from exc
    raise PlanError(f"unknown policy mode: {mode!r}")


@dataclass(frozen=True)
class BenchmarkPlan:
    """Workloads crossed with solvers, sharing one repetition policy."""

    label: str
    workloads: Sequence[WorkloadConfig]
    solvers: Sequence[str]
    policy: RepetitionPolicy = field(default_factory=lambda: FixedPolicy(count=5))
    chart_title: str = "Solver Wall-Clock Time by Workload"
    chart_filename: str = "solver_comparison.png"
    description: str | None = None

    def __iter__(self) -> Iterator[WorkloadConfig]:
        return iter(self.workloads)


def default_benchmark_plan() -> BenchmarkPlan:
    """Return the default master-equation vs Monte-Carlo comparison."""

    mesolve = WorkloadConfig(
        name="mesolve-ising",
        kind="mesolve",
        num_sites=6,
        coupling=1.0,
        field=0.5,
        gamma=0.1,
        t_final=2.0,
        num_steps=41,
    )
    mcsolve = WorkloadConfig(
        name="mcsolve-ising",
        kind="mcsolve",
        num_sites=6,
        coupling=1.0,
        field=0.5,
        gamma=0.1,
        t_final=2.0,
        num_steps=41,
        ntraj=100,
    )
    return BenchmarkPlan(
        label="ising-chain",
        description=(
            "Transverse-field Ising chain with local decay, evolved with the master "
            "equation and with Monte-Carlo trajectories."
        ),
        workloads=[mesolve, mcsolve],
        solvers=["qutip", "qutip-dia", "dynamiqs"],
        policy=FixedPolicy(count=5),
    )


def plan_from_dict(data: dict[str, Any], known_solvers: Sequence[str]) -> BenchmarkPlan:
    try:
        raw_workloads = data["workloads"]
        solvers = data["solvers"]
    except KeyError as exc:
        raise PlanError(f"plan is missing field {exc.args[0]!r}") from exc
    if not isinstance(raw_workloads, list):
        raise PlanError("plan field 'workloads' must be a list")
    if not isinstance(solvers, list) or not all(isinstance(name, str) for name in solvers):
        raise PlanError("plan field 'solvers' must be a list of names")

    unknown = [name for name in solvers if name not in known_solvers]
    if unknown:
        raise PlanError(f"unknown solver(s): {', '.join(unknown)}")
    if not solvers:
        raise PlanError("plan must name at least one solver")

    allowed = {f.name for f in fields(WorkloadConfig)}
    workloads: list[WorkloadConfig] = []
    for raw in raw_workloads:
        if not isinstance(raw, dict):
            raise PlanError(f"each workload must be a JSON object, got {type(raw).__name__}")
        extra = set(raw) - allowed
        if extra:
            raise PlanError(f"unknown workload field(s): {', '.join(sorted(extra))}")
        if raw.get("kind") not in WORKLOAD_KINDS:
            raise PlanError(f"workload kind must be one of {WORKLOAD_KINDS}, got {raw.get('kind')!r}")
        try:
            workloads.append(WorkloadConfig(**raw))
        except (TypeError, ValueError) as exc:
            raise PlanError(f"invalid workload {raw.get('name', '<unnamed>')!r}: {exc}") from exc
    if not workloads:
        raise PlanError("plan must define at least one workload")

    names = [w.name for w in workloads]
    if len(set(names)) != len(names):
        raise PlanError("workload names must be unique")

    kwargs: dict[str, Any] = {}
    for key in ("chart_title", "chart_filename", "description"):
        if key in data:
            kwargs[key] = data[key]
    return BenchmarkPlan(
        label=str(data.get("label", "custom")),
        workloads=workloads,
        solvers=solvers,
        policy=policy_from_dict(data.get("policy", {"mode": "fixed", "count": 5})),
        **kwargs,
    )


def load_plan(path: str | Path | None, known_solvers: Sequence[str]) -> BenchmarkPlan:
    if not path:
        return default_benchmark_plan()
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise PlanError(f"plan file {path} is not valid JSON: {exc}") from exc
    except OSError as exc:
        raise PlanError(f"cannot read plan file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise PlanError(f"plan file {path} must contain a JSON object")
    return plan_from_dict(data, known_solvers)
