"""Overshoot Solver — Streamlit Dashboard.

Four-tab interactive dashboard for the exact overshoot distribution:
  Tab 1 — Exact Distribution        (marginal tables + text report)
  Tab 2 — Joint Heat Map            (matplotlib, P(final total, draws))
  Tab 3 — Interactive Lookup        (Plotly, hover for joint/conditional P)
  Tab 4 — Monte Carlo Cross-Check   (sampled games vs exact, chi-square)

Run:
    PYTHONPATH=. streamlit run app.py
"""

from __future__ import annotations

import contextlib
import io

import matplotlib

matplotlib.use("Agg")  # must be set before any other matplotlib imports

import streamlit as st

# ─── Page config ──────────────────────────────────────────────────────────────

st.set_page_config(
    page_title="Overshoot Solver",
    page_icon="🃏",
    layout="wide",
)

# ─── Lazy imports (inside functions to keep startup fast) ─────────────────────


@st.cache_resource
def _load_analysis_modules():
    """Import heavy analysis modules once (cached for the process lifetime)."""
    import pandas as pd

    from src.analysis.aggregator import summarize
    from src.analysis.distribution_report import print_cross_check, print_exact_report
    from src.analysis.heat_maps import plot_joint_heatmap, plot_marginals
    from src.analysis.plotly_lookup import build_joint_lookup_figure, build_marginals_figure
    from src.analysis.simulator import compare_with_exact, simulate_games
    from src.engine.deck import RankMultiset

    return {
        "pd": pd,
        "summarize": summarize,
        "print_exact_report": print_exact_report,
        "print_cross_check": print_cross_check,
        "plot_joint_heatmap": plot_joint_heatmap,
        "plot_marginals": plot_marginals,
        "build_joint_lookup_figure": build_joint_lookup_figure,
        "build_marginals_figure": build_marginals_figure,
        "simulate_games": simulate_games,
        "compare_with_exact": compare_with_exact,
        "RankMultiset": RankMultiset,
    }


@st.cache_resource
def _run_exact(preset: str, target: int, inclusive: bool):
    """Run the exact solver and cache the result (keyed on the problem)."""
    from src.engine.deck import RankMultiset
    from src.solvers.exact_dp import run_exact_solver

    return run_exact_solver(RankMultiset.preset(preset), target, inclusive=inclusive)


# ─── Sidebar controls ─────────────────────────────────────────────────────────

with st.sidebar:
    from src.engine.cards import DECK_PRESETS, DEFAULT_TARGET

    st.title("🃏 Overshoot Solver")
    st.markdown("---")

    preset = st.selectbox(
        "Deck",
        options=list(DECK_PRESETS),
        index=list(DECK_PRESETS).index("inflated_tens"),
    )
    st.caption(f"Counts for ranks 1–10: {list(DECK_PRESETS[preset])}")

    target = st.slider(
        "Target total",
        min_value=1,
        max_value=40,
        value=DEFAULT_TARGET,
        step=1,
    )

    inclusive = st.selectbox(
        "Stop rule",
        options=[False, True],
        format_func=lambda v: "total ≥ target" if v else "total > target",
        index=0,
    )

    st.markdown("---")
    n_mc_games = st.slider(
        "MC games (cross-check tab)",
        min_value=10_000,
        max_value=200_000,
        value=50_000,
        step=10_000,
    )

    st.markdown("---")
    st.caption("Deck → exact DP → marginals → Monte Carlo check")

# ─── Exact solve ──────────────────────────────────────────────────────────────

m = _load_analysis_modules()

with st.spinner("Solving exact distribution …"):
    run = _run_exact(preset, target, inclusive)
summary = m["summarize"](run.distribution)
st.sidebar.success(
    f"Solved {run.n_states:,} states in {run.elapsed_s:.2f}s — "
    f"E[total] {summary.expected_total:.3f}, E[draws] {summary.expected_draws:.3f}"
)

# ─── Tabs ─────────────────────────────────────────────────────────────────────

tab1, tab2, tab3, tab4 = st.tabs(
    [
        "Exact Distribution",
        "Joint Heat Map",
        "Interactive Lookup",
        "Monte Carlo Cross-Check",
    ]
)

pd = m["pd"]

# ── Tab 1: Exact Distribution ─────────────────────────────────────────────────

with tab1:
    st.header("Exact Distribution")

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("E[final total]", f"{summary.expected_total:.4f}")
    col2.metric("SD final total", f"{summary.std_total:.4f}")
    col3.metric("E[cards drawn]", f"{summary.expected_draws:.4f}")
    col4.metric("SD cards drawn", f"{summary.std_draws:.4f}")

    left, right = st.columns(2)
    with left:
        st.subheader("Final total")
        total_df = pd.DataFrame(
            {
                "Total": list(summary.total_dist.keys()),
                "Probability %": [p * 100 for p in summary.total_dist.values()],
            }
        )
        st.dataframe(total_df, use_container_width=True, hide_index=True)
    with right:
        st.subheader("Cards drawn")
        length_df = pd.DataFrame(
            {
                "Cards": list(summary.length_dist.keys()),
                "Probability %": [p * 100 for p in summary.length_dist.values()],
            }
        )
        st.dataframe(length_df, use_container_width=True, hide_index=True)

    st.markdown("---")
    st.subheader("Full Report (stdout capture)")
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        m["print_exact_report"](
            summary,
            title=f"Deck '{preset}', target {target}",
            n_states=run.n_states,
        )
    st.code(buf.getvalue(), language=None)

# ── Tab 2: Joint Heat Map ─────────────────────────────────────────────────────

with tab2:
    st.header("Joint Heat Map")
    st.caption("Rows = final total | Cols = cards drawn | Cell = probability (%) | Grey = unreachable")
    fig_joint = m["plot_joint_heatmap"](run.distribution, show=False)
    st.pyplot(fig_joint)

    st.markdown("---")
    st.subheader("Marginals")
    fig_marg = m["plot_marginals"](summary, show=False)
    st.pyplot(fig_marg)

# ── Tab 3: Interactive Lookup ─────────────────────────────────────────────────

with tab3:
    st.header("Interactive Lookup")
    st.caption("Hover over any cell to see the joint and conditional probabilities.")
    fig_lookup = m["build_joint_lookup_figure"](run.distribution)
    st.plotly_chart(fig_lookup, use_container_width=True)

# ── Tab 4: Monte Carlo Cross-Check ────────────────────────────────────────────

with tab4:
    st.header("Monte Carlo Cross-Check")
    st.caption("Shuffle the physical deck and play games; compare frequencies with the exact marginals.")

    with st.spinner(f"Simulating {n_mc_games:,} games …"):
        sim = m["simulate_games"](
            m["RankMultiset"].preset(preset),
            target,
            n_games=n_mc_games,
            seed=42,
            inclusive=inclusive,
        )
    check = m["compare_with_exact"](sim, summary)

    col1, col2, col3 = st.columns(3)
    col1.metric("MC mean total", f"{sim.mean_total:.4f}", f"{sim.mean_total - summary.expected_total:+.4f}")
    col2.metric("MC mean draws", f"{sim.mean_draws:.4f}", f"{sim.mean_draws - summary.expected_draws:+.4f}")
    col3.metric("Consistent (α=0.001)", "yes" if check.consistent() else "no")

    fig_mc = m["build_marginals_figure"](summary, sim)
    st.plotly_chart(fig_mc, use_container_width=True)

    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        m["print_cross_check"](check)
    st.code(buf.getvalue(), language=None)
