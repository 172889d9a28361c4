"""Tests for the static distribution figures (src/analysis/heat_maps.py).

Each plot function must return a well-formed matplotlib Figure.  The Agg
backend is activated before any pyplot import so the suite runs without a
display server.
"""

from __future__ import annotations

import os

import matplotlib

matplotlib.use("Agg")  # must precede any pyplot import

import matplotlib.figure
import matplotlib.pyplot as plt
import pytest

from src.analysis.aggregator import summarize
from src.analysis.heat_maps import plot_joint_heatmap, plot_marginals
from src.analysis.simulator import simulate_games
from src.engine.deck import RankMultiset
from src.solvers.exact_dp import solve
from tests.conftest import MIXED_LENGTH_DIST, deck


@pytest.fixture(scope="module")
def forty_dist():
    return solve(RankMultiset.preset("forty"), 12)


@pytest.fixture(autouse=True)
def _close_figures():
    yield
    plt.close("all")


# ─── plot_joint_heatmap ───────────────────────────────────────────────────────


class TestPlotJointHeatmap:
    def test_returns_figure(self) -> None:
        fig = plot_joint_heatmap(MIXED_LENGTH_DIST, show=False)
        assert isinstance(fig, matplotlib.figure.Figure)

    def test_axis_labels(self) -> None:
        fig = plot_joint_heatmap(MIXED_LENGTH_DIST, show=False)
        ax = fig.axes[0]
        assert ax.get_xlabel() == "Cards drawn"
        assert ax.get_ylabel() == "Final total"

    def test_tick_labels_cover_ranges(self) -> None:
        fig = plot_joint_heatmap(MIXED_LENGTH_DIST, show=False)
        ax = fig.axes[0]
        assert [t.get_text() for t in ax.get_xticklabels()] == ["2", "3"]
        assert [t.get_text() for t in ax.get_yticklabels()] == ["4", "5", "6"]

    def test_small_grid_annotated(self) -> None:
        fig = plot_joint_heatmap(MIXED_LENGTH_DIST, show=False)
        texts = [t.get_text() for t in fig.axes[0].texts]
        # one label per reachable cell; (6, 2) is unreachable
        assert len(texts) == 5
        assert "33.3" in texts

    def test_title(self) -> None:
        fig = plot_joint_heatmap(MIXED_LENGTH_DIST, "Small deck", show=False)
        assert fig.axes[0].get_title() == "Small deck"

    def test_has_colorbar(self) -> None:
        fig = plot_joint_heatmap(MIXED_LENGTH_DIST, show=False)
        assert len(fig.axes) == 2

    def test_larger_distribution(self, forty_dist) -> None:
        fig = plot_joint_heatmap(forty_dist, show=False)
        assert isinstance(fig, matplotlib.figure.Figure)

    def test_save_path(self, tmp_path) -> None:
        path = str(tmp_path / "joint.png")
        plot_joint_heatmap(MIXED_LENGTH_DIST, show=False, save_path=path)
        assert os.path.exists(path)
        assert os.path.getsize(path) > 0


# ─── plot_marginals ───────────────────────────────────────────────────────────


class TestPlotMarginals:
    def test_returns_figure_with_two_axes(self) -> None:
        fig = plot_marginals(summarize(MIXED_LENGTH_DIST), show=False)
        assert isinstance(fig, matplotlib.figure.Figure)
        assert len(fig.axes) == 2

    def test_bar_count_matches_marginals(self) -> None:
        fig = plot_marginals(summarize(MIXED_LENGTH_DIST), show=False)
        ax_total, ax_len = fig.axes
        assert len(ax_total.patches) == 3
        assert len(ax_len.patches) == 2

    def test_with_simulation_overlay(self) -> None:
        sim = simulate_games(deck(2, 1, 1), 3, n_games=500, seed=1)
        fig = plot_marginals(summarize(MIXED_LENGTH_DIST), sim, show=False)
        labels = [t.get_text() for t in fig.axes[0].get_legend().get_texts()]
        assert "Monte Carlo" in labels
        assert "Exact" in labels

    def test_mean_line_in_legend(self) -> None:
        fig = plot_marginals(summarize(MIXED_LENGTH_DIST), show=False)
        labels = [t.get_text() for t in fig.axes[1].get_legend().get_texts()]
        assert "Mean 2.500" in labels

    def test_save_path(self, tmp_path) -> None:
        path = str(tmp_path / "marginals.png")
        plot_marginals(summarize(MIXED_LENGTH_DIST), show=False, save_path=path)
        assert os.path.exists(path)
