"""
Benchmark harness for quantum time-evolution solvers.

This package times zero-argument solver invocations after a discarded warm-up
call, reduces the samples to summary statistics, collects them into a
per-workload comparison table and renders a grouped bar chart.
"""

from .collector import ComparisonTable
from .config import AdaptivePolicy, BenchmarkPlan, FixedPolicy
from .errors import (
    BenchmarkError,
    InvocationFailed,
    PlanError,
    PolicyViolation,
    SolverUnavailable,
)
from .harness import BenchmarkResult, BenchmarkSpec, SampleSet, compare, run

__all__ = [
    "AdaptivePolicy",
    "BenchmarkError",
    "BenchmarkPlan",
    "BenchmarkResult",
    "BenchmarkSpec",
    "ComparisonTable",
    "FixedPolicy",
    "InvocationFailed",
    "PlanError",
    "PolicyViolation",
    "SampleSet",
    "SolverUnavailable",
    "compare",
    "run",
]
