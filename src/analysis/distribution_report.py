"""Text reports for exact and Monte Carlo overshoot distributions.

Formatting functions return strings; print_* wrappers send them to stdout.

    format_marginal_table(marginal, label)   — one "Label: k | Probability: x%" line per value
    format_exact_report(summary, ...)         — both exact marginals + expectations
    format_simulation_report(result)          — Monte Carlo counts as percentages
    print_exact_report / print_simulation_report / print_cross_check
    save_report(text, path)                   — write a report to disk
"""

from __future__ import annotations

from src.analysis.aggregator import DistributionSummary
from src.analysis.simulator import CrossCheck, SimulationResult

_RULE_WIDTH: int = 40


def format_marginal_table(marginal: dict[int, float], label: str) -> list[str]:
    """One line per outcome value, probabilities shown as percentages.

    Examples:
        >>> format_marginal_table({31: 0.25}, "Score")
        ['Score: 31 | Probability: 25.000000%']
    """
    return [
        f"{label}: {k} | Probability: {p * 100:>9.6f}%"
        for k, p in sorted(marginal.items())
    ]


def format_exact_report(
    summary: DistributionSummary,
    *,
    title: str = "Exact Distribution",
    n_states: int | None = None,
) -> str:
    """Render both exact marginals with their mass and expectation."""
    lines = [title]
    if n_states is not None:
        lines.append(f"Reachable memo states: {n_states:,}")
    lines.append("")

    lines.append("--- Score Distribution ---")
    lines.extend(format_marginal_table(summary.total_dist, "Score"))
    lines.append("-" * _RULE_WIDTH)
    lines.append(f"Total Probability: {summary.total_mass * 100:.6f}%")
    lines.append(f"Average Final Score: {summary.expected_total:.6f}")
    lines.append(f"Std Dev Final Score: {summary.std_total:.6f}")
    lines.append("")

    lines.append("--- Length Distribution ---")
    lines.extend(format_marginal_table(summary.length_dist, "Length"))
    lines.append("-" * _RULE_WIDTH)
    lines.append(f"Total Probability: {summary.length_mass * 100:.6f}%")
    lines.append(f"Average Run Length: {summary.expected_draws:.6f}")
    lines.append(f"Std Dev Run Length: {summary.std_draws:.6f}")
    return "\n".join(lines)


def format_simulation_report(result: SimulationResult) -> str:
    """Render Monte Carlo counts as percentage tables with averages."""
    lines = ["Monte Carlo Simulation Results", f"Total Games Simulated: {result.n_games:,}", ""]
    if result.n_games == 0:
        lines.append("No games were played.")
        return "\n".join(lines)

    lines.append("--- Averages ---")
    lines.append(
        f"Average Score:  {result.mean_total:.4f}  "
        f"(95% CI {result.ci_95_total[0]:.4f} – {result.ci_95_total[1]:.4f})"
    )
    lines.append(
        f"Average Length: {result.mean_draws:.4f} cards  "
        f"(95% CI {result.ci_95_draws[0]:.4f} – {result.ci_95_draws[1]:.4f})"
    )
    lines.append("")
    lines.append("--- Score Distribution ---")
    lines.extend(format_marginal_table(result.total_frequencies(), "Score"))
    lines.append("")
    lines.append("--- Length Distribution ---")
    lines.extend(format_marginal_table(result.length_frequencies(), "Length"))
    return "\n".join(lines)


# ─── Console output ───────────────────────────────────────────────────────────


def print_exact_report(
    summary: DistributionSummary,
    *,
    title: str = "Exact Distribution",
    n_states: int | None = None,
) -> None:
    print("=" * _RULE_WIDTH)
    print(format_exact_report(summary, title=title, n_states=n_states))
    print()


def print_simulation_report(result: SimulationResult) -> None:
    print("=" * _RULE_WIDTH)
    print(format_simulation_report(result))
    print()


def print_cross_check(check: CrossCheck, alpha: float = 1e-3) -> None:
    """Print the chi-square comparison of Monte Carlo against exact marginals."""
    verdict = "consistent" if check.consistent(alpha) else "INCONSISTENT"
    print("=" * _RULE_WIDTH)
    print("Monte Carlo vs Exact")
    print("=" * _RULE_WIDTH)
    print(f"  Games:              {check.n_games:,}")
    print(f"  Score  χ² / p:      {check.total_chi2:.3f} / {check.total_p_value:.4f}")
    print(f"  Length χ² / p:      {check.length_chi2:.3f} / {check.length_p_value:.4f}")
    print(f"  Max |freq − prob|:  score {check.max_total_deviation:.5f}, "
          f"length {check.max_length_deviation:.5f}")
    print(f"  Verdict (α={alpha:g}): {verdict}")
    print()


# ─── Persistence ──────────────────────────────────────────────────────────────


def save_report(text: str, path: str) -> str:
    """Write a report to ``path`` (UTF-8, trailing newline) and return the path."""
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(text)
        if not text.endswith("\n"):
            fh.write("\n")
    return path
