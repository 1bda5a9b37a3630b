from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Optional

import numpy as np

from .collector import ComparisonTable
from .config import AdaptivePolicy, FixedPolicy, RepetitionPolicy, validate_policy
from .errors import BenchmarkError, InvocationFailed, PolicyViolation

LOGGER = logging.getLogger("solverbench.benchmark.harness")

Thunk = Callable[[], Any]
Clock = Callable[[], float]


@dataclass(frozen=True)
class BenchmarkSpec:
    """One (solver, workload) pair wrapped as a parameterless invocation."""

    solver: str
    workload: str
    invocation: Thunk
    warmup: Optional[Thunk] = None

    @property
    def label(self) -> str:
        return f"{self.solver}/{self.workload}"

    def warmup_thunk(self) -> Thunk:
        return self.warmup if self.warmup is not None else self.invocation


@dataclass(frozen=True)
class BenchmarkResult:
    solver: str
    workload: str
    count: int
    mean: float
    minimum: float
    median: float
    stddev: float
    total: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "solver": self.solver,
            "workload": self.workload,
            "count": self.count,
            "mean_s": self.mean,
            "min_s": self.minimum,
            "median_s": self.median,
            "stddev_s": self.stddev,
            "total_s": self.total,
        }


class SampleSet:
    """Elapsed-time samples for one harness run, in invocation order."""

    def __init__(self) -> None:
        self._samples: list[float] = []
        self._total = 0.0

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[float]:
        return iter(self._samples)

    @property
    def total(self) -> float:
        return self._total

    @property
    def mean(self) -> float:
        if not self._samples:
            return 0.0
        return self._total / len(self._samples)

    def append(self, elapsed: float) -> None:
        # A rewound clock must never produce a negative sample.
        elapsed = max(float(elapsed), 0.0)
        self._samples.append(elapsed)
        self._total += elapsed

    def reduce(self, solver: str, workload: str) -> BenchmarkResult:
        if not self._samples:
            raise ValueError("cannot reduce an empty sample set")
        values = np.asarray(self._samples, dtype=float)
        stddev = float(values.std(ddof=1)) if values.size > 1 else 0.0
        return BenchmarkResult(
            solver=solver,
            workload=workload,
            count=int(values.size),
            mean=float(values.mean()),
            minimum=float(values.min()),
            median=float(np.median(values)),
            stddev=stddev,
            total=float(values.sum()),
        )


def _should_stop(samples: SampleSet, policy: RepetitionPolicy) -> bool:
    count = len(samples)
    if isinstance(policy, FixedPolicy):
        return count >= policy.count

    if not isinstance(policy, AdaptivePolicy):
        raise PolicyViolation(f"unsupported repetition policy: {policy!r}")
    if count < policy.min_samples:
        return False
    if policy.max_samples is not None and count >= policy.max_samples:
        return True
    if samples.total >= policy.max_total_seconds:
        return True
    return samples.mean >= policy.min_sample_seconds


def run(
    spec: BenchmarkSpec,
    policy: RepetitionPolicy,
    *,
    clock: Clock = time.perf_counter,
) -> BenchmarkResult:
    """Time ``spec.invocation`` under ``policy`` after one discarded warm-up call.

    The time budget of an adaptive policy is only consulted between
    invocations, so a slow call can overrun it by at most its own duration.
    Any exception from the wrapped call is re-raised as ``InvocationFailed``
    and no partial result is produced.
    """
    validate_policy(policy)

    try:
        spec.warmup_thunk()()
    except Exception as exc:
        raise InvocationFailed(spec.solver, spec.workload, exc, phase="warmup") from exc

    samples = SampleSet()
    while not _should_stop(samples, policy):
        index = len(samples)
        started = clock()
        try:
            spec.invocation()
        except Exception as exc:
            raise InvocationFailed(
                spec.solver, spec.workload, exc, phase="sample", sample_index=index
            ) from exc
        finished = clock()
        samples.append(finished - started)
        LOGGER.debug("%s sample %d: %.6fs", spec.label, index, finished - started)

    result = samples.reduce(spec.solver, spec.workload)
    LOGGER.info(
        "%s: %d samples, mean %.6fs (median %.6fs, stddev %.6fs)",
        spec.label,
        result.count,
        result.mean,
        result.median,
        result.stddev,
    )
    return result


def compare(
    specs: Iterable[BenchmarkSpec],
    policy: RepetitionPolicy,
    *,
    table: ComparisonTable | None = None,
    clock: Clock = time.perf_counter,
) -> ComparisonTable:
    """Run every spec in order, recording failures instead of aborting the sweep."""
    validate_policy(policy)
    table = table if table is not None else ComparisonTable()
    for spec in specs:
        try:
            result = run(spec, policy, clock=clock)
        except BenchmarkError as exc:
            message = table.record_failure(spec.workload, spec.solver, exc)
            LOGGER.warning(message)
            continue
        table.record(result)
    return table
