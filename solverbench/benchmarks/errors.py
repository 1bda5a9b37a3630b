from __future__ import annotations

from typing import Optional


class BenchmarkError(Exception):
    """Base class for failures surfaced by the benchmark harness."""


class PolicyViolation(BenchmarkError, ValueError):
    """Raised when a repetition policy cannot produce a valid sample set."""


class PlanError(BenchmarkError, ValueError):
    """Raised when a benchmark plan references unknown names or bad fields."""


class SolverUnavailable(BenchmarkError):
    """Raised when a solver adapter cannot build an invocation for a workload."""

    def __init__(self, solver: str, workload: str, reason: str) -> None:
        super().__init__(f"{solver}/{workload}: {reason}")
        self.solver = solver
        self.workload = workload
        self.reason = reason


class InvocationFailed(BenchmarkError):
    """The wrapped solver call raised during warm-up or a timed sample."""

    def __init__(
        self,
        solver: str,
        workload: str,
        cause: BaseException,
        phase: str,
        sample_index: Optional[int] = None,
    ) -> None:
        where = phase if sample_index is None else f"{phase} #{sample_index}"
        super().__init__(f"{solver}/{workload} failed during {where}: {cause!r}")
        self.solver = solver
        self.workload = workload
        self.cause = cause
        self.phase = phase
        self.sample_index = sample_index
