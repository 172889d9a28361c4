"""Interactive Plotly lookup figures for overshoot distributions.

Three public functions:

    build_joint_lookup_figure(dist, title)
        — Heat map of P(final total, draws); hover shows the joint
          probability and both conditional probabilities.
    build_marginals_figure(summary, sim)
        — 1×2 bar charts of the exact marginals, optional Monte Carlo overlay.
    save_lookup_html(fig, path)
        — Export any figure to an HTML file.
"""

from __future__ import annotations

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from src.analysis.aggregator import DistributionSummary, joint_matrix
from src.analysis.simulator import SimulationResult
from src.solvers.memo import OutcomeDistribution

_JOINT_COLORSCALE: str = "Viridis"
_EXACT_COLOR: str = "#1f77b4"
_MC_COLOR: str = "#d62728"


# ─── Hover text ───────────────────────────────────────────────────────────────


def _build_joint_hover(
    totals: list[int],
    lengths: list[int],
    matrix: np.ndarray,
) -> list[list[str]]:
    """Return a hover string per cell (empty for unreachable cells).

    Each reachable cell shows the final total, cards drawn, the joint
    probability, P(total | draws) and P(draws | total).
    """
    row_sums = matrix.sum(axis=1)
    col_sums = matrix.sum(axis=0)
    rows: list[list[str]] = []
    for r, total in enumerate(totals):
        row: list[str] = []
        for c, draws in enumerate(lengths):
            prob = matrix[r, c]
            if prob == 0.0:
                row.append("")
                continue
            lines = [
                f"Final total: <b>{total}</b>",
                f"Cards drawn: <b>{draws}</b>",
                f"P(total, draws): <b>{prob * 100:.4f}%</b>",
                f"P(total | draws): {prob / col_sums[c] * 100:.2f}%",
                f"P(draws | total): {prob / row_sums[r] * 100:.2f}%",
            ]
            row.append("<br>".join(lines))
        rows.append(row)
    return rows


# ─── Public figure builders ───────────────────────────────────────────────────


def build_joint_lookup_figure(
    dist: OutcomeDistribution,
    title: str = "Joint distribution — final total × cards drawn",
) -> go.Figure:
    """Build an interactive heat map of the joint distribution.

    Args:
        dist:  Joint distribution from ``exact_dp.solve``.
        title: Figure title.

    Returns:
        go.Figure with a single heat map trace.  Unreachable cells are blank.
    """
    totals, lengths, matrix = joint_matrix(dist)
    hover = _build_joint_hover(totals, lengths, matrix)
    z = [[None if v == 0.0 else v for v in row] for row in matrix.tolist()]

    fig = go.Figure(
        go.Heatmap(
            z=z,
            x=[str(n) for n in lengths],
            y=[str(t) for t in totals],
            colorscale=_JOINT_COLORSCALE,
            text=hover,
            hovertemplate="%{text}<extra></extra>",
            colorbar={"title": "P"},
            name="joint",
        )
    )
    fig.update_layout(
        title_text=title,
        title_font_size=15,
        xaxis_title="Cards drawn",
        yaxis_title="Final total",
        height=max(400, 22 * len(totals) + 150),
    )
    return fig


def build_marginals_figure(
    summary: DistributionSummary,
    sim: SimulationResult | None = None,
    title: str = "Exact marginals",
) -> go.Figure:
    """Build side-by-side bar charts of both marginals.

    Args:
        summary: DistributionSummary from ``aggregator.summarize``.
        sim:     Optional Monte Carlo result, drawn as marker traces.
        title:   Figure title.

    Returns:
        go.Figure with 2 traces (exact totals, exact draws), or 4 when a
        Monte Carlo result is given.
    """
    fig = make_subplots(rows=1, cols=2, subplot_titles=("Final total", "Cards drawn"))

    fig.add_trace(
        go.Bar(
            x=list(summary.total_dist.keys()),
            y=list(summary.total_dist.values()),
            name="Exact — total",
            marker_color=_EXACT_COLOR,
            hovertemplate="Total %{x}<br>P = %{y:.6f}<extra></extra>",
        ),
        row=1,
        col=1,
    )
    fig.add_trace(
        go.Bar(
            x=list(summary.length_dist.keys()),
            y=list(summary.length_dist.values()),
            name="Exact — draws",
            marker_color=_EXACT_COLOR,
            hovertemplate="%{x} cards<br>P = %{y:.6f}<extra></extra>",
        ),
        row=1,
        col=2,
    )

    if sim is not None:
        total_freq = sim.total_frequencies()
        length_freq = sim.length_frequencies()
        fig.add_trace(
            go.Scatter(
                x=list(total_freq.keys()),
                y=list(total_freq.values()),
                mode="markers",
                marker={"color": _MC_COLOR, "symbol": "x", "size": 9},
                name="Monte Carlo — total",
            ),
            row=1,
            col=1,
        )
        fig.add_trace(
            go.Scatter(
                x=list(length_freq.keys()),
                y=list(length_freq.values()),
                mode="markers",
                marker={"color": _MC_COLOR, "symbol": "x", "size": 9},
                name="Monte Carlo — draws",
            ),
            row=1,
            col=2,
        )
        title = f"{title} vs Monte Carlo ({sim.n_games:,} games)"

    fig.update_layout(title_text=title, title_font_size=15, bargap=0.15, height=450)
    fig.update_yaxes(title_text="Probability", row=1, col=1)
    return fig


def save_lookup_html(fig: go.Figure, path: str) -> None:
    """Save a Plotly figure to an HTML file.

    Plotly JS is loaded from the CDN so the file itself stays compact.

    Args:
        fig:  Any go.Figure produced by this module.
        path: Destination file path (e.g. ``"joint_lookup.html"``).
    """
    fig.write_html(path, include_plotlyjs="cdn")


# ─── Entry point ───────────────────────────────────────────────────────────────

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

    print("Building interactive lookup figures …")
    save_lookup_html(build_joint_lookup_figure(dist), "joint_lookup.html")
    save_lookup_html(build_marginals_figure(summarize(dist)), "marginals.html")
    print("Saved: joint_lookup.html, marginals.html")
