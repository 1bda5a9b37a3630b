from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pandas as pd

from .errors import BenchmarkError, InvocationFailed, SolverUnavailable

if TYPE_CHECKING:
    from .harness import BenchmarkResult

RESULT_COLUMNS = [
    "workload",
    "solver",
    "count",
    "mean_s",
    "min_s",
    "median_s",
    "stddev_s",
    "total_s",
]


def unavailable_message(solver: str, workload: str, error: BaseException) -> str:
    if isinstance(error, InvocationFailed):
        cause: Any = error.cause
    elif isinstance(error, SolverUnavailable):
        cause = error.reason
    else:
        cause = error
    return f"benchmark unavailable for {solver}/{workload}: {cause}"


class ComparisonTable:
    """Per-workload mapping of solver name to its benchmark result."""

    def __init__(self) -> None:
        self._results: dict[str, dict[str, BenchmarkResult]] = {}
        self._failures: dict[str, dict[str, str]] = {}

    def record(self, result: BenchmarkResult) -> None:
        self._results.setdefault(result.workload, {})[result.solver] = result

    def record_failure(self, workload: str, solver: str, error: BenchmarkError) -> str:
        message = unavailable_message(solver, workload, error)
        self._failures.setdefault(workload, {})[solver] = message
        return message

    @property
    def workloads(self) -> list[str]:
        names = list(self._results)
        names.extend(name for name in self._failures if name not in self._results)
        return names

    @property
    def solvers(self) -> list[str]:
        seen: dict[str, None] = {}
        for per_solver in self._results.values():
            seen.update(dict.fromkeys(per_solver))
        return list(seen)

    def results(self, workload: str) -> dict[str, BenchmarkResult]:
        return dict(self._results.get(workload, {}))

    def get(self, workload: str, solver: str) -> BenchmarkResult | None:
        return self._results.get(workload, {}).get(solver)

    def failures(self) -> list[str]:
        return [
            message
            for per_solver in self._failures.values()
            for message in per_solver.values()
        ]

    def __len__(self) -> int:
        return sum(len(per_solver) for per_solver in self._results.values())

    def build_dataframe(self) -> pd.DataFrame:
        rows = []
        for workload, per_solver in self._results.items():
            for result in per_solver.values():
                rows.append(result.to_dict())
        if not rows:
            return pd.DataFrame(columns=RESULT_COLUMNS)
        return pd.DataFrame(rows)[RESULT_COLUMNS]

    def summary(self) -> dict[str, Any]:
        return {
            workload: {solver: result.mean for solver, result in per_solver.items()}
            for workload, per_solver in self._results.items()
        }
