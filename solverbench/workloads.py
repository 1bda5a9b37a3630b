from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import numpy as np
import qutip as qt

WORKLOAD_KINDS: tuple[str, ...] = ("mesolve", "mcsolve")


@dataclass(frozen=True)
class WorkloadConfig:
    """Parameters of a transverse-field Ising chain with local decay."""

    name: str
    kind: str
    num_sites: int
    coupling: float = 1.0
    field: float = 0.5
    gamma: float = 0.1
    t_final: float = 2.0
    num_steps: int = 41
    ntraj: int = 100

    def __post_init__(self) -> None:
        if self.kind not in WORKLOAD_KINDS:
            raise ValueError(f"unknown workload kind: {self.kind!r}")
        if self.num_sites < 2:
            raise ValueError("an Ising chain needs at least two sites")
        if self.num_steps < 2:
            raise ValueError("the time grid needs at least two points")
        if self.ntraj < 1:
            raise ValueError("mcsolve needs at least one trajectory")
        if not (math.isfinite(self.gamma) and self.gamma >= 0):
            raise ValueError(f"gamma must be a finite rate >= 0, got {self.gamma}")
        if not (math.isfinite(self.t_final) and self.t_final > 0):
            raise ValueError(f"t_final must be a finite time > 0, got {self.t_final}")

    def describe(self) -> str:
        text = (
            f"{self.kind} L={self.num_sites} J={self.coupling} h={self.field} "
            f"gamma={self.gamma} T={self.t_final} steps={self.num_steps}"
        )
        if self.kind == "mcsolve":
            text += f" ntraj={self.ntraj}"
        return text


@dataclass
class Problem:
    hamiltonian: Any
    initial_state: Any
    times: np.ndarray
    collapse_ops: list[Any]
    observables: list[Any]

    @property
    def dimension(self) -> int:
        return int(np.prod(self.hamiltonian.dims[0]))


def _site_operator(op: qt.Qobj, site: int, num_sites: int) -> qt.Qobj:
    ops = [qt.qeye(2)] * num_sites
    ops[site] = op
    return qt.tensor(ops)


def build_problem(config: WorkloadConfig) -> Problem:
    """Build operators, initial state and time grid for ``config`` with QuTiP."""
    L = config.num_sites
    sz = [_site_operator(qt.sigmaz(), i, L) for i in range(L)]
    sx = [_site_operator(qt.sigmax(), i, L) for i in range(L)]

    # H = -J sum Z_i Z_{i+1} - h sum X_i
    hamiltonian = -config.coupling * sum(sz[i] * sz[i + 1] for i in range(L - 1))
    hamiltonian = hamiltonian - config.field * sum(sx)

    collapse_ops = [
        np.sqrt(config.gamma) * _site_operator(qt.sigmam(), i, L) for i in range(L)
    ]
    initial_state = qt.tensor([qt.basis(2, 0) for _ in range(L)])
    times = np.linspace(0.0, config.t_final, config.num_steps)

    return Problem(
        hamiltonian=hamiltonian,
        initial_state=initial_state,
        times=times,
        collapse_ops=collapse_ops,
        observables=sz,
    )
