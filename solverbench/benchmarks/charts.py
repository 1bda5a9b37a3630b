from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from .collector import ComparisonTable

LOGGER = logging.getLogger("solverbench.benchmark.charts")

sns.set_style("whitegrid")
plt.rcParams["figure.dpi"] = 100
plt.rcParams["savefig.dpi"] = 300
plt.rcParams["font.size"] = 10
plt.rcParams["axes.labelsize"] = 11
plt.rcParams["axes.titlesize"] = 13
plt.rcParams["xtick.labelsize"] = 10
plt.rcParams["ytick.labelsize"] = 10
plt.rcParams["legend.fontsize"] = 9

SOLVER_COLORS = {
    "qutip": "#2E86AB",  # Blue
    "qutip-dia": "#A23B72",  # Purple
    "qutip-parallel": "#F18F01",  # Orange
    "dynamiqs": "#6A994E",  # Green
}


def solver_colors(solvers: list[str]) -> dict[str, str]:
    """Fixed colours for known solvers, a seaborn palette for the rest."""
    unknown = [name for name in solvers if name not in SOLVER_COLORS]
    palette = sns.color_palette("deep", n_colors=max(len(unknown), 1)).as_hex()
    colors = dict(zip(unknown, palette))
    colors.update({name: SOLVER_COLORS[name] for name in solvers if name in SOLVER_COLORS})
    return colors


def render_comparison_chart(
    table: ComparisonTable,
    chart_path: Path,
    title: str,
    log_scale: bool = False,
) -> Path:
    """Render mean wall-clock time per solver, grouped by workload."""
    df = table.build_dataframe()
    fig, ax = plt.subplots(figsize=(10, 6))

    if df.empty:
        LOGGER.warning("No benchmark results available for chart %s", chart_path)
        ax.text(0.5, 0.5, "No results", ha="center", va="center", transform=ax.transAxes)
        ax.set_title(title, fontweight="bold", pad=15)
        fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
        plt.close(fig)
        return chart_path

    workloads = list(dict.fromkeys(df["workload"]))
    solvers = list(dict.fromkeys(df["solver"]))
    colors = solver_colors(solvers)

    x = np.arange(len(workloads))
    width = 0.8 / len(solvers)

    for idx, solver in enumerate(solvers):
        subset = df[df["solver"] == solver].set_index("workload")
        means = [subset["mean_s"].get(w, np.nan) for w in workloads]
        errors = [subset["stddev_s"].get(w, 0.0) for w in workloads]
        offsets = x - 0.4 + width * (idx + 0.5)
        bars = ax.bar(
            offsets,
            means,
            width,
            yerr=errors,
            capsize=3,
            label=solver,
            color=colors[solver],
            alpha=0.85,
            edgecolor="white",
            linewidth=1.5,
        )
        for bar, value in zip(bars, means):
            if np.isnan(value):
                continue
            ax.text(
                bar.get_x() + bar.get_width() / 2.0,
                bar.get_height(),
                _format_seconds(value),
                ha="center",
                va="bottom",
                fontsize=8,
                fontweight="semibold",
            )

    ax.set_xticks(x)
    ax.set_xticklabels(workloads)
    ax.set_ylabel("Mean wall-clock time (s)", fontweight="semibold")
    ax.set_xlabel("Workload", fontweight="semibold")
    ax.set_title(title, fontweight="bold", pad=15)
    if log_scale:
        ax.set_yscale("log")
    ax.legend(title="Solver", frameon=True, fancybox=True, shadow=True)
    ax.grid(True, alpha=0.3, axis="y", linestyle="--")
    ax.set_axisbelow(True)
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)

    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path


def _format_seconds(value: float) -> str:
    if value < 1e-3:
        return f"{value * 1e6:.0f}µs"
    if value < 1.0:
        return f"{value * 1e3:.1f}ms"
    return f"{value:.2f}s"
