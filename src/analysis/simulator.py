"""
Monte Carlo simulator for cross-checking the exact overshoot solver.

Each game shuffles the physical deck and draws from the top until the running
total reaches the stop level (or the deck runs out).  Observed (final total,
cards drawn) pairs are tallied and summarised into frequencies, means and 95%
confidence intervals, then compared against the exact marginals with a
chi-square goodness-of-fit test.

Two drivers:
    simulate_games()        — fixed number of games, seeded, returns a result.
    run_until_interrupted() — open-ended loop; Ctrl+C (or a threading.Event)
                              stops it and the partial tally is reported.

The tally is guarded by a lock so another thread can take snapshots while a
run is in progress.

Usage (open-ended run, Ctrl+C to stop):
    PYTHONPATH=. python -m src.analysis.simulator [preset] [target]
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass

import numpy as np
from scipy import stats

from src.analysis.aggregator import DistributionSummary
from src.engine.cards import DEFAULT_TARGET
from src.engine.deck import RankMultiset, create_deck, shuffle_deck
from src.solvers.exact_dp import stop_level, validate_problem

_MIN_EXPECTED_COUNT: float = 5.0
"""Categories expected to occur fewer times than this are pooled for chi-square."""

# ─── Result type ──────────────────────────────────────────────────────────────


@dataclass
class SimulationResult:
    """Aggregate statistics from a Monte Carlo run.

    Attributes:
        n_games:       Number of games played.
        total_counts:  {final_total: games}, sorted by total.
        length_counts: {draws: games}, sorted by draw count.
        mean_total:    Sample mean of the final total.
        mean_draws:    Sample mean of the number of cards drawn.
        std_total:     Sample standard deviation of the final total.
        std_draws:     Sample standard deviation of the draw count.
        ci_95_total:   95% confidence interval for mean_total.
        ci_95_draws:   95% confidence interval for mean_draws.
    """

    n_games: int
    total_counts: dict[int, int]
    length_counts: dict[int, int]
    mean_total: float
    mean_draws: float
    std_total: float
    std_draws: float
    ci_95_total: tuple[float, float]
    ci_95_draws: tuple[float, float]

    def total_frequencies(self) -> dict[int, float]:
        return {k: c / self.n_games for k, c in self.total_counts.items()}

    def length_frequencies(self) -> dict[int, float]:
        return {k: c / self.n_games for k, c in self.length_counts.items()}

    def __str__(self) -> str:
        return (
            f"Games: {self.n_games:,} | "
            f"Mean total: {self.mean_total:.4f} "
            f"[{self.ci_95_total[0]:.4f}, {self.ci_95_total[1]:.4f}] | "
            f"Mean draws: {self.mean_draws:.4f} "
            f"[{self.ci_95_draws[0]:.4f}, {self.ci_95_draws[1]:.4f}]"
        )


def _count_stats(counts: dict[int, int], n: int) -> tuple[float, float, tuple[float, float]]:
    """(mean, sample std, 95% CI of the mean) of a value → count table."""
    if n == 0:
        return math.nan, math.nan, (math.nan, math.nan)
    keys = np.fromiter(counts.keys(), dtype=np.float64, count=len(counts))
    weights = np.fromiter(counts.values(), dtype=np.float64, count=len(counts))
    mean = float(np.dot(keys, weights) / n)
    if n < 2:
        return mean, 0.0, (mean, mean)
    std = math.sqrt(float(np.dot((keys - mean) ** 2, weights)) / (n - 1))
    margin = 1.96 * std / math.sqrt(n)
    return mean, std, (mean - margin, mean + margin)


def build_result(
    total_counts: dict[int, int],
    length_counts: dict[int, int],
    n_games: int,
) -> SimulationResult:
    """Summarise raw outcome counts into a SimulationResult."""
    total_counts = dict(sorted(total_counts.items()))
    length_counts = dict(sorted(length_counts.items()))
    mean_total, std_total, ci_total = _count_stats(total_counts, n_games)
    mean_draws, std_draws, ci_draws = _count_stats(length_counts, n_games)
    return SimulationResult(
        n_games=n_games,
        total_counts=total_counts,
        length_counts=length_counts,
        mean_total=mean_total,
        mean_draws=mean_draws,
        std_total=std_total,
        std_draws=std_draws,
        ci_95_total=ci_total,
        ci_95_draws=ci_draws,
    )


# ─── Shared tally ─────────────────────────────────────────────────────────────


class SimulationTally:
    """Lock-guarded outcome counters shared between a sampler and observers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_counts: dict[int, int] = {}
        self._length_counts: dict[int, int] = {}
        self._n_games = 0

    def record(self, final_total: int, draws: int) -> None:
        with self._lock:
            self._n_games += 1
            self._total_counts[final_total] = self._total_counts.get(final_total, 0) + 1
            self._length_counts[draws] = self._length_counts.get(draws, 0) + 1

    @property
    def n_games(self) -> int:
        with self._lock:
            return self._n_games

    def snapshot(self) -> SimulationResult:
        """Consistent copy of the counts gathered so far."""
        with self._lock:
            totals = dict(self._total_counts)
            lengths = dict(self._length_counts)
            n = self._n_games
        return build_result(totals, lengths, n)


# ─── Single game ──────────────────────────────────────────────────────────────


def play_game(
    deck: np.ndarray,
    target: int,
    *,
    inclusive: bool = False,
    initial_total: int = 0,
) -> tuple[int, int]:
    """Shuffle the deck and draw until the stop level is reached.

    Args:
        deck:          Physical deck array (card values) — shuffled in place.
        target:        Target threshold.
        inclusive:     If True, stop once total >= target.
        initial_total: Total accumulated before the first draw.

    Returns:
        (final_total, cards_drawn).  If the deck runs out first, the final
        total is the whole deck's value and every card counts as drawn.
    """
    stop = stop_level(target, inclusive)
    if initial_total >= stop or deck.size == 0:
        return initial_total, 0

    shuffle_deck(deck)
    running = initial_total + np.cumsum(deck, dtype=np.int64)
    stops = np.flatnonzero(running >= stop)
    if stops.size == 0:
        return int(running[-1]), int(deck.size)
    i = int(stops[0])
    return int(running[i]), i + 1


# ─── Drivers ──────────────────────────────────────────────────────────────────


def simulate_games(
    multiset: RankMultiset,
    target: int = DEFAULT_TARGET,
    n_games: int = 100_000,
    seed: int | None = 42,
    *,
    inclusive: bool = False,
    initial_total: int = 0,
) -> SimulationResult:
    """Play n_games independent games and return aggregate statistics.

    Args:
        multiset:      Starting deck; a fresh shuffle is used for every game.
        target:        Target threshold.
        n_games:       Number of games to play (> 0).
        seed:          NumPy random seed for reproducibility.  None for a
                       non-deterministic run.
        inclusive:     If True, stop once total >= target.
        initial_total: Total accumulated before the first draw.

    Returns:
        SimulationResult.
    """
    validate_problem(multiset, target, initial_total, inclusive)
    if n_games <= 0:
        raise ValueError(f"n_games must be positive; got {n_games}.")
    if seed is not None:
        np.random.seed(seed)

    deck = create_deck(multiset)
    tally = SimulationTally()
    for _ in range(n_games):
        final_total, draws = play_game(
            deck, target, inclusive=inclusive, initial_total=initial_total
        )
        tally.record(final_total, draws)
    return tally.snapshot()


def run_until_interrupted(
    multiset: RankMultiset,
    target: int = DEFAULT_TARGET,
    *,
    inclusive: bool = False,
    seed: int | None = None,
    max_games: int | None = None,
    stop_event: threading.Event | None = None,
    tally: SimulationTally | None = None,
    progress_every: int = 1_000_000,
    report_path: str | None = None,
) -> SimulationResult:
    """Sample games until interrupted, then report the partial tally.

    The loop ends on Ctrl+C (KeyboardInterrupt), when ``stop_event`` is set,
    or after ``max_games`` games.  Whatever was gathered is printed and, if
    ``report_path`` is given, written to that file.

    Args:
        multiset:       Starting deck.
        target:         Target threshold.
        inclusive:      If True, stop once total >= target.
        seed:           NumPy random seed, or None.
        max_games:      Optional cap on the number of games.
        stop_event:     Optional event checked before every game.
        tally:          Optional shared tally (lets another thread snapshot it).
        progress_every: Print a progress line every this many games (0 = never).
        report_path:    Optional file path for the final report.

    Returns:
        SimulationResult for every game completed before the stop.
    """
    from src.analysis.distribution_report import format_simulation_report, save_report

    validate_problem(multiset, target, 0, inclusive)
    if seed is not None:
        np.random.seed(seed)

    deck = create_deck(multiset)
    if tally is None:
        tally = SimulationTally()
    played = 0
    t0 = time.perf_counter()

    try:
        while max_games is None or played < max_games:
            if stop_event is not None and stop_event.is_set():
                break
            final_total, draws = play_game(deck, target, inclusive=inclusive)
            tally.record(final_total, draws)
            played += 1
            if progress_every and played % progress_every == 0:
                rate = played / max(time.perf_counter() - t0, 1e-9)
                print(f"Games played: {played:>12,} ({rate / 1e6:.2f} million games/sec)")
    except KeyboardInterrupt:
        print("\n--- Simulation Interrupted ---")

    result = tally.snapshot()
    report = format_simulation_report(result)
    print(report)
    if report_path is not None:
        save_report(report, report_path)
        print(f"Results saved to '{report_path}'")
    return result


# ─── Cross-check against the exact solver ─────────────────────────────────────


@dataclass
class CrossCheck:
    """Goodness-of-fit of Monte Carlo counts against exact marginals.

    Attributes:
        n_games:              Games in the Monte Carlo sample.
        total_chi2:           Chi-square statistic for the final-total marginal.
        total_p_value:        Its p-value.
        length_chi2:          Chi-square statistic for the draw-count marginal.
        length_p_value:       Its p-value.
        max_total_deviation:  max |observed freq − exact prob| over totals.
        max_length_deviation: max |observed freq − exact prob| over draw counts.
    """

    n_games: int
    total_chi2: float
    total_p_value: float
    length_chi2: float
    length_p_value: float
    max_total_deviation: float
    max_length_deviation: float

    def consistent(self, alpha: float = 1e-3) -> bool:
        """True if neither marginal is rejected at significance level alpha."""
        return self.total_p_value >= alpha and self.length_p_value >= alpha

    def __str__(self) -> str:
        return (
            f"Games: {self.n_games:,} | "
            f"Totals χ²={self.total_chi2:.2f} (p={self.total_p_value:.4f}) | "
            f"Draws χ²={self.length_chi2:.2f} (p={self.length_p_value:.4f}) | "
            f"Max deviation: {max(self.max_total_deviation, self.max_length_deviation):.5f}"
        )


def _goodness_of_fit(
    observed: dict[int, int],
    expected: dict[int, float],
    n: int,
) -> tuple[float, float]:
    """Chi-square test with low-expectation categories pooled into one bin."""
    if any(count > 0 and k not in expected for k, count in observed.items()):
        # Outcomes the exact solver says are impossible
        return math.inf, 0.0

    kept = [k for k, p in expected.items() if p * n >= _MIN_EXPECTED_COUNT]
    f_obs = [float(observed.get(k, 0)) for k in kept]
    f_exp = [expected[k] * n for k in kept]

    kept_set = set(kept)
    pooled_obs = n - sum(f_obs)
    pooled_exp = n * math.fsum(p for k, p in expected.items() if k not in kept_set)
    if pooled_exp > 0.0:
        f_obs.append(pooled_obs)
        f_exp.append(pooled_exp)
    elif pooled_obs > 0:
        # Observed outcomes with zero exact probability
        return math.inf, 0.0

    if len(f_obs) < 2:
        return 0.0, 1.0

    exp_arr = np.asarray(f_exp, dtype=np.float64)
    exp_arr *= n / exp_arr.sum()
    res = stats.chisquare(np.asarray(f_obs, dtype=np.float64), exp_arr)
    return float(res.statistic), float(res.pvalue)


def _max_deviation(freqs: dict[int, float], probs: dict[int, float]) -> float:
    keys = set(freqs) | set(probs)
    return max(abs(freqs.get(k, 0.0) - probs.get(k, 0.0)) for k in keys)


def compare_with_exact(result: SimulationResult, summary: DistributionSummary) -> CrossCheck:
    """Test whether Monte Carlo counts are consistent with the exact marginals.

    Raises:
        ValueError: If the simulation result holds no games.
    """
    if result.n_games == 0:
        raise ValueError("Cannot compare an empty simulation against the exact solver.")

    n = result.n_games
    total_chi2, total_p = _goodness_of_fit(result.total_counts, summary.total_dist, n)
    length_chi2, length_p = _goodness_of_fit(result.length_counts, summary.length_dist, n)
    return CrossCheck(
        n_games=n,
        total_chi2=total_chi2,
        total_p_value=total_p,
        length_chi2=length_chi2,
        length_p_value=length_p,
        max_total_deviation=_max_deviation(result.total_frequencies(), summary.total_dist),
        max_length_deviation=_max_deviation(result.length_frequencies(), summary.length_dist),
    )


# ─── __main__ ─────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import sys

    preset = sys.argv[1] if len(sys.argv) > 1 else "short_deck"
    target = int(sys.argv[2]) if len(sys.argv) > 2 else DEFAULT_TARGET

    deck = RankMultiset.preset(preset)
    print(f"Monte Carlo — deck '{preset}' ({deck.cards_remaining} cards), stop when total > {target}")
    print("Starting simulation... Press Ctrl+C to stop and save results.")
    run_until_interrupted(deck, target, report_path="monte_carlo_results.txt")
