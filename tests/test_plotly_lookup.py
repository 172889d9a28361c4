"""Tests for the interactive Plotly lookup tool (src/analysis/plotly_lookup.py).

Tests verify that each public function returns a well-formed go.Figure with the
expected trace count, data invariants, and hover text.  The save helper is
tested against a temporary file path.
"""

from __future__ import annotations

import os

import plotly.graph_objects as go
import pytest

from src.analysis.aggregator import summarize
from src.analysis.plotly_lookup import (
    build_joint_lookup_figure,
    build_marginals_figure,
    save_lookup_html,
)
from src.analysis.simulator import simulate_games
from tests.conftest import MIXED_LENGTH_DIST, deck


@pytest.fixture(scope="module")
def sim():
    return simulate_games(deck(2, 1, 1), 3, n_games=1_000, seed=5)


# ─── build_joint_lookup_figure ────────────────────────────────────────────────


class TestBuildJointLookupFigure:
    def test_returns_figure(self) -> None:
        assert isinstance(build_joint_lookup_figure(MIXED_LENGTH_DIST), go.Figure)

    def test_single_heatmap_trace(self) -> None:
        fig = build_joint_lookup_figure(MIXED_LENGTH_DIST)
        assert len(fig.data) == 1
        assert isinstance(fig.data[0], go.Heatmap)

    def test_axes(self) -> None:
        trace = build_joint_lookup_figure(MIXED_LENGTH_DIST).data[0]
        assert list(trace.x) == ["2", "3"]
        assert list(trace.y) == ["4", "5", "6"]

    def test_unreachable_cells_blank(self) -> None:
        trace = build_joint_lookup_figure(MIXED_LENGTH_DIST).data[0]
        # row 2 = total 6, col 0 = 2 draws
        assert trace.z[2][0] is None
        assert trace.text[2][0] == ""

    def test_z_values(self) -> None:
        trace = build_joint_lookup_figure(MIXED_LENGTH_DIST).data[0]
        assert trace.z[0][0] == pytest.approx(1 / 3)
        assert trace.z[2][1] == pytest.approx(1 / 6)

    def test_hover_has_conditionals(self) -> None:
        trace = build_joint_lookup_figure(MIXED_LENGTH_DIST).data[0]
        hover = trace.text[0][0]
        assert "Final total: <b>4</b>" in hover
        assert "Cards drawn: <b>2</b>" in hover
        # P(total=4 | draws=2) = (1/3) / (1/2)
        assert "P(total | draws): 66.67%" in hover
        # P(draws=2 | total=4) = (1/3) / (7/12)
        assert "P(draws | total): 57.14%" in hover

    def test_title(self) -> None:
        fig = build_joint_lookup_figure(MIXED_LENGTH_DIST, title="Small deck")
        assert fig.layout.title.text == "Small deck"


# ─── build_marginals_figure ───────────────────────────────────────────────────


class TestBuildMarginalsFigure:
    def test_two_traces_without_sim(self) -> None:
        fig = build_marginals_figure(summarize(MIXED_LENGTH_DIST))
        assert len(fig.data) == 2
        assert all(isinstance(t, go.Bar) for t in fig.data)

    def test_four_traces_with_sim(self, sim) -> None:
        fig = build_marginals_figure(summarize(MIXED_LENGTH_DIST), sim)
        assert len(fig.data) == 4
        assert sum(isinstance(t, go.Scatter) for t in fig.data) == 2

    def test_bar_values(self) -> None:
        fig = build_marginals_figure(summarize(MIXED_LENGTH_DIST))
        totals = fig.data[0]
        assert list(totals.x) == [4, 5, 6]
        assert sum(totals.y) == pytest.approx(1.0)

    def test_title_mentions_games(self, sim) -> None:
        fig = build_marginals_figure(summarize(MIXED_LENGTH_DIST), sim)
        assert "vs Monte Carlo (1,000 games)" in fig.layout.title.text

    def test_title_plain(self) -> None:
        fig = build_marginals_figure(summarize(MIXED_LENGTH_DIST))
        assert fig.layout.title.text == "Exact marginals"


# ─── save_lookup_html ─────────────────────────────────────────────────────────


class TestSaveLookupHtml:
    def test_writes_html(self, tmp_path) -> None:
        path = str(tmp_path / "joint.html")
        save_lookup_html(build_joint_lookup_figure(MIXED_LENGTH_DIST), path)
        assert os.path.exists(path)
        with open(path, encoding="utf-8") as fh:
            html = fh.read()
        assert "<html>" in html
        assert "cdn.plot.ly" in html
