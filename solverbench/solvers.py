from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, Sequence, Union

import qutip as qt

from .benchmarks.errors import SolverUnavailable
from .benchmarks.harness import BenchmarkSpec
from .workloads import Problem, WorkloadConfig, build_problem

LOGGER = logging.getLogger("solverbench.benchmark.solvers")

Adapter = Callable[[Problem, WorkloadConfig], BenchmarkSpec]

_NO_PROGRESS = {"progress_bar": ""}


def _qutip_call(problem: Problem, config: WorkloadConfig, options: dict[str, Any]) -> Any:
    if config.kind == "mesolve":
        return qt.mesolve(
            problem.hamiltonian,
            problem.initial_state,
            problem.times,
            c_ops=problem.collapse_ops,
            e_ops=problem.observables,
            options=dict(_NO_PROGRESS),
        )
    return qt.mcsolve(
        problem.hamiltonian,
        problem.initial_state,
        problem.times,
        c_ops=problem.collapse_ops,
        e_ops=problem.observables,
        ntraj=config.ntraj,
        options={**_NO_PROGRESS, **options},
    )


def qutip_adapter(problem: Problem, config: WorkloadConfig) -> BenchmarkSpec:
    return BenchmarkSpec(
        solver="qutip",
        workload=config.name,
        invocation=lambda: _qutip_call(problem, config, {}),
    )


def qutip_parallel_adapter(problem: Problem, config: WorkloadConfig) -> BenchmarkSpec:
    # Only mcsolve has a trajectory map; mesolve runs the serial call.
    return BenchmarkSpec(
        solver="qutip-parallel",
        workload=config.name,
        invocation=lambda: _qutip_call(problem, config, {"map": "parallel"}),
    )


def qutip_dia_adapter(problem: Problem, config: WorkloadConfig) -> BenchmarkSpec:
    with qt.CoreOptions(default_dtype="Dia"):
        dia_problem = Problem(
            hamiltonian=problem.hamiltonian.to("Dia"),
            initial_state=problem.initial_state,
            times=problem.times,
            collapse_ops=[op.to("Dia") for op in problem.collapse_ops],
            observables=[op.to("Dia") for op in problem.observables],
        )

    def invoke() -> Any:
        with qt.CoreOptions(default_dtype="Dia"):
            return _qutip_call(dia_problem, config, {})

    return BenchmarkSpec(solver="qutip-dia", workload=config.name, invocation=invoke)


def dynamiqs_adapter(problem: Problem, config: WorkloadConfig) -> BenchmarkSpec:
    if config.kind != "mesolve":
        raise SolverUnavailable("dynamiqs", config.name, f"no {config.kind} entry point")
    try:
        import dynamiqs as dq
        import jax
        import jax.numpy as jnp
    except ImportError as exc:
        raise SolverUnavailable("dynamiqs", config.name, f"not installed ({exc})") from exc

    hamiltonian = jnp.asarray(problem.hamiltonian.full())
    jump_ops = [jnp.asarray(op.full()) for op in problem.collapse_ops]
    psi0 = jnp.asarray(problem.initial_state.full())
    exp_ops = [jnp.asarray(op.full()) for op in problem.observables]
    tsave = jnp.asarray(problem.times)
    options = dq.Options(progress_meter=None)

    def invoke() -> Any:
        # JAX dispatches asynchronously; block so the sample covers the solve.
        result = dq.mesolve(hamiltonian, jump_ops, psi0, tsave, exp_ops=exp_ops, options=options)
        return jax.block_until_ready(result.expects)

    return BenchmarkSpec(solver="dynamiqs", workload=config.name, invocation=invoke)


SOLVER_ADAPTERS: dict[str, Adapter] = {
    "qutip": qutip_adapter,
    "qutip-dia": qutip_dia_adapter,
    "qutip-parallel": qutip_parallel_adapter,
    "dynamiqs": dynamiqs_adapter,
}


def available_solvers() -> list[str]:
    return list(SOLVER_ADAPTERS)


def build_specs(
    workload: WorkloadConfig,
    solvers: Sequence[str],
    adapters: dict[str, Adapter] | None = None,
) -> Iterator[Union[BenchmarkSpec, SolverUnavailable]]:
    """Yield one spec per solver, or the reason the solver cannot run ``workload``."""
    adapters = adapters if adapters is not None else SOLVER_ADAPTERS
    problem = build_problem(workload)
    LOGGER.info("Built %s (Hilbert space dimension %d)", workload.describe(), problem.dimension)
    for solver in solvers:
        adapter = adapters.get(solver)
        if adapter is None:
            yield SolverUnavailable(solver, workload.name, "no adapter registered")
            continue
        try:
            yield adapter(problem, workload)
        except SolverUnavailable as exc:
            yield exc
