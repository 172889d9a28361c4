"""Static matplotlib figures for overshoot distributions.

Two public plot functions:

    plot_joint_heatmap(dist, title, ...)   — P(final total, draws) as a heat map
    plot_marginals(summary, sim, ...)       — 1×2 bar charts of both marginals,
                                              optionally overlaid with Monte
                                              Carlo frequencies

Matrix convention (joint heat map):
    rows   = final totals (ascending, contiguous range)
    cols   = draw counts  (ascending, contiguous range)
    values = probability; unreachable cells are masked (grey)
"""

from __future__ import annotations

import matplotlib
import matplotlib.colors
import matplotlib.figure
import matplotlib.pyplot as plt
import numpy as np

from src.analysis.aggregator import DistributionSummary, joint_matrix
from src.analysis.simulator import SimulationResult
from src.solvers.memo import OutcomeDistribution

# ─── Constants ────────────────────────────────────────────────────────────────

_NAN_COLOR: str = "#cccccc"
_EXACT_COLOR: str = "#1f77b4"
_MC_COLOR: str = "#d62728"
_ANNOTATE_MAX_CELLS: int = 150
"""Cells are annotated with their probability only when the grid is this small."""


def _make_prob_cmap() -> matplotlib.colors.Colormap:
    """Viridis gradient, grey for unreachable (masked) cells."""
    cmap = matplotlib.colormaps["viridis"].copy()
    cmap.set_bad(color=_NAN_COLOR)
    return cmap


_PROB_CMAP: matplotlib.colors.Colormap = _make_prob_cmap()


# ─── Joint heat map ───────────────────────────────────────────────────────────


def plot_joint_heatmap(
    dist: OutcomeDistribution,
    title: str = "Joint distribution of final total and draws",
    *,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Plot P(final total, draws) as a heat map.

    Args:
        dist:      Joint distribution from ``exact_dp.solve``.
        title:     Figure title.
        show:      If True, call plt.show() after rendering.
        save_path: If not None, save the figure to this path before showing.

    Returns:
        matplotlib.figure.Figure.
    """
    totals, lengths, matrix = joint_matrix(dist)
    masked = np.ma.masked_where(matrix == 0.0, matrix)

    fig, ax = plt.subplots(figsize=(max(6, 0.6 * len(lengths) + 3), max(4, 0.35 * len(totals) + 2)))
    im = ax.imshow(masked, cmap=_PROB_CMAP, aspect="auto", origin="lower")
    ax.set_title(title, fontsize=12, fontweight="bold")

    ax.set_xticks(range(len(lengths)))
    ax.set_xticklabels([str(n) for n in lengths], fontsize=9)
    ax.set_yticks(range(len(totals)))
    ax.set_yticklabels([str(t) for t in totals], fontsize=9)
    ax.set_xlabel("Cards drawn", fontsize=10)
    ax.set_ylabel("Final total", fontsize=10)

    if matrix.size <= _ANNOTATE_MAX_CELLS:
        vmax = float(matrix.max())
        for r in range(matrix.shape[0]):
            for c in range(matrix.shape[1]):
                val = matrix[r, c]
                if val == 0.0:
                    continue
                ax.text(
                    c,
                    r,
                    f"{val * 100:.1f}",
                    ha="center",
                    va="center",
                    fontsize=7,
                    color="black" if val > 0.6 * vmax else "white",
                )

    plt.colorbar(im, ax=ax, label="Probability", fraction=0.046, pad=0.04)
    plt.tight_layout()

    if save_path is not None:
        fig.savefig(save_path, bbox_inches="tight", dpi=120)
    if show:
        plt.show()

    return fig


# ─── Marginal bar charts ──────────────────────────────────────────────────────


def _render_marginal(
    ax: matplotlib.axes.Axes,
    marginal: dict[int, float],
    frequencies: dict[int, float] | None,
    xlabel: str,
    expected: float,
) -> None:
    """Draw one marginal as bars, with optional Monte Carlo markers."""
    keys = list(marginal.keys())
    probs = list(marginal.values())
    ax.bar(keys, probs, color=_EXACT_COLOR, alpha=0.8, label="Exact")

    if frequencies is not None:
        mc_keys = sorted(frequencies)
        ax.scatter(
            mc_keys,
            [frequencies[k] for k in mc_keys],
            color=_MC_COLOR,
            marker="x",
            zorder=3,
            label="Monte Carlo",
        )

    ax.axvline(expected, color="black", linestyle="--", linewidth=1, label=f"Mean {expected:.3f}")
    ax.set_xticks(keys)
    ax.set_xlabel(xlabel, fontsize=9)
    ax.set_ylabel("Probability", fontsize=9)
    ax.legend(fontsize=8)


def plot_marginals(
    summary: DistributionSummary,
    sim: SimulationResult | None = None,
    *,
    title: str = "Final total and draw-count distributions",
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Plot both exact marginals side by side.

    Args:
        summary:   DistributionSummary from ``aggregator.summarize``.
        sim:       Optional Monte Carlo result; its frequencies are drawn as
                   markers over the exact bars.
        title:     Figure suptitle.
        show:      If True, call plt.show().
        save_path: If not None, save to path.

    Returns:
        matplotlib.figure.Figure with two axes.
    """
    fig, (ax_total, ax_len) = plt.subplots(1, 2, figsize=(12, 4.5))
    fig.suptitle(title, fontsize=13, fontweight="bold")

    _render_marginal(
        ax_total,
        summary.total_dist,
        sim.total_frequencies() if sim is not None else None,
        "Final total",
        summary.expected_total,
    )
    ax_total.set_title("Final total", fontsize=10)

    _render_marginal(
        ax_len,
        summary.length_dist,
        sim.length_frequencies() if sim is not None else None,
        "Cards drawn",
        summary.expected_draws,
    )
    ax_len.set_title("Cards drawn", fontsize=10)

    plt.tight_layout()

    if save_path is not None:
        fig.savefig(save_path, bbox_inches="tight", dpi=120)
    if show:
        plt.show()

    return fig


# ─── Entry point ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import sys

    from src.analysis.aggregator import summarize
    from src.engine.cards import DEFAULT_TARGET
    from src.engine.deck import RankMultiset
    from src.solvers.exact_dp import solve

    preset = sys.argv[1] if len(sys.argv) > 1 else "inflated_tens"
    target = int(sys.argv[2]) if len(sys.argv) > 2 else DEFAULT_TARGET

    print(f"Solving deck '{preset}' with target {target} …")
    dist = solve(RankMultiset.preset(preset), target)
    plot_joint_heatmap(dist, f"Deck '{preset}', stop when total > {target}", show=False, save_path="joint_heatmap.png")
    plot_marginals(summarize(dist), show=False, save_path="marginals.png")
    print("Saved: joint_heatmap.png, marginals.png")
