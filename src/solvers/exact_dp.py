"""
Exact solver for the overshoot distribution via memoized recursion.

Cards are drawn uniformly at random, without replacement, from a finite deck
until the running total reaches the stop level (or the deck runs out).  The
solver returns the exact joint distribution of

    (final total, number of cards drawn)

State = (remaining per-rank counts, accumulated total).  The number of cards
already drawn is NOT part of the state: what happens next depends only on
which cards remain and on the accumulated total.  Each recursion level adds
its own draw (+1) to every outcome returned by its successors.

Stop level:
    strict rule    (default)          stop once total >  target  → stop = target + 1
    inclusive rule (inclusive=True)   stop once total >= target  → stop = target

Working on per-rank counts instead of card sequences is what keeps the
problem tractable: the number of distinct states is the number of
sub-multisets whose value sum stays below the stop level, not the number of
draw orders.
"""

from __future__ import annotations

import math
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from src.engine.cards import DEFAULT_TARGET
from src.engine.deck import RankMultiset
from src.solvers.memo import MemoCache, OutcomeDistribution
from src.solvers.state_key import StateCanonicalizer

# ─── Constants ────────────────────────────────────────────────────────────────

MASS_TOLERANCE: float = 1e-9
"""Largest accepted deviation of a distribution's total probability from 1."""

_RECURSION_MARGIN: int = 200
"""Stack frames kept free above the deepest recursion path."""


# ─── Errors ───────────────────────────────────────────────────────────────────


class DistributionIntegrityError(ValueError):
    """A distribution's probabilities do not sum to 1 within tolerance."""


class StateSpaceTooLargeError(RuntimeError):
    """The problem would memoize more states than the caller allowed."""


# ─── Problem definition ───────────────────────────────────────────────────────


def stop_level(target: int, inclusive: bool = False) -> int:
    """Smallest accumulated total at which drawing stops.

    Examples:
        >>> stop_level(30)
        31
        >>> stop_level(30, inclusive=True)
        30
    """
    return target if inclusive else target + 1


def _as_multiset(deck: RankMultiset | Sequence[int]) -> RankMultiset:
    if isinstance(deck, RankMultiset):
        return deck
    return RankMultiset(tuple(deck))


def validate_problem(
    multiset: RankMultiset,
    target: int,
    initial_total: int = 0,
    inclusive: bool = False,
) -> None:
    """Reject malformed problems before any state reaches the memo cache.

    Raises:
        ValueError: If the target or initial total is out of range, or the
                    deck is empty while the starting total is below the
                    stop level.
    """
    if not isinstance(target, (int, np.integer)) or isinstance(target, bool):
        raise ValueError(f"Target threshold must be an integer; got {target!r}.")
    if inclusive and target <= 0:
        raise ValueError(f"Inclusive target threshold must be positive; got {target}.")
    if not inclusive and target < 0:
        raise ValueError(f"Target threshold must be non-negative; got {target}.")
    if not isinstance(initial_total, (int, np.integer)) or isinstance(initial_total, bool):
        raise ValueError(f"Initial total must be an integer; got {initial_total!r}.")
    if initial_total < 0:
        raise ValueError(f"Initial total must be non-negative; got {initial_total}.")
    if multiset.is_empty and initial_total < stop_level(target, inclusive):
        raise ValueError(
            f"Deck is empty but the starting total {initial_total} has not reached "
            f"the stop level {stop_level(target, inclusive)}; nothing to draw."
        )


def estimate_state_count(
    deck: RankMultiset | Sequence[int],
    target: int,
    initial_total: int = 0,
    inclusive: bool = False,
) -> int:
    """Count the non-terminal states a solve will memoize, without solving.

    A state is fixed by the sub-multiset of cards drawn so far; it is
    non-terminal when the drawn value sum keeps the total below the stop
    level and at least one card remains.  Because every card value is
    positive, each such sub-multiset is reachable.  The count is a bounded
    knapsack over ranks, O(num_ranks × headroom × max_count).

    Examples:
        >>> estimate_state_count(RankMultiset((2, 1, 1), values=(1, 2, 3)), target=3)
        6
    """
    multiset = _as_multiset(deck)
    headroom = stop_level(target, inclusive) - initial_total
    if headroom <= 0:
        return 0

    # ways[s] = number of drawn sub-multisets with value sum s (s < headroom)
    ways = np.zeros(headroom, dtype=np.int64)
    ways[0] = 1
    for value, count in zip(multiset.values, multiset.counts):
        nxt = np.zeros_like(ways)
        for k in range(count + 1):
            shift = k * value
            if shift >= headroom:
                break
            nxt[shift:] += ways[: headroom - shift]
        ways = nxt

    n_states = int(ways.sum())
    if multiset.total_value() < headroom:
        n_states -= 1  # drawing the whole deck empties it: terminal, not memoized
    return n_states


def check_distribution_mass(
    dist: OutcomeDistribution,
    tolerance: float = MASS_TOLERANCE,
) -> float:
    """Return the total probability of a distribution, verifying it is 1.

    Raises:
        DistributionIntegrityError: If the mass deviates from 1 by more than
                                    ``tolerance``.
    """
    mass = math.fsum(dist.values())
    if abs(mass - 1.0) > tolerance:
        raise DistributionIntegrityError(
            f"Distribution mass is {mass!r}, expected 1 within {tolerance:g} "
            f"({len(dist)} outcomes)."
        )
    return mass


# ─── Recursive core ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class _Problem:
    """Constants shared by every recursive call of one solve."""

    values: tuple[int, ...]
    stop: int
    canon: StateCanonicalizer
    check_mass: bool
    tolerance: float


def _solve_state(
    counts: tuple[int, ...],
    counts_key: int,
    total: int,
    remaining: int,
    problem: _Problem,
    memo: MemoCache,
) -> OutcomeDistribution:
    """Return the distribution of (final total, further draws) from one state.

    Args:
        counts:     Remaining cards per rank.
        counts_key: ``counts`` packed by the problem's canonicaliser.
        total:      Accumulated total so far.
        remaining:  ``sum(counts)``.
        problem:    Per-solve constants.
        memo:       Shared memo cache; the returned dict may be a cached
                    entry and must not be mutated.
    """
    # Terminal: stop level reached or nothing left to draw
    if total >= problem.stop or remaining == 0:
        return {(total, 0): 1.0}

    key = problem.canon.state_key(counts_key, total)
    cached = memo.lookup(key)
    if cached is not None:
        return cached

    result: OutcomeDistribution = {}
    for rank, count in enumerate(counts):
        if count == 0:
            continue
        p = count / remaining
        next_counts = counts[:rank] + (count - 1,) + counts[rank + 1 :]
        sub_dist = _solve_state(
            next_counts,
            counts_key - problem.canon.rank_step(rank),
            total + problem.values[rank],
            remaining - 1,
            problem,
            memo,
        )
        for (final_total, draws), q in sub_dist.items():
            # +1 for the card drawn at this level
            outcome = (final_total, draws + 1)
            result[outcome] = result.get(outcome, 0.0) + p * q

    if problem.check_mass:
        mass = math.fsum(result.values())
        if abs(mass - 1.0) > problem.tolerance:
            raise DistributionIntegrityError(
                f"State counts={counts} total={total} has mass {mass!r}, "
                f"expected 1 within {problem.tolerance:g}."
            )

    memo.insert(key, result)
    return result


def _max_depth(multiset: RankMultiset, headroom: int) -> int:
    """Upper bound on recursion depth: draws before the stop level or deck end."""
    if headroom <= 0:
        return 0
    min_value = min(v for v, c in zip(multiset.values, multiset.counts) if c > 0)
    return min(multiset.cards_remaining, math.ceil(headroom / min_value))


def _ensure_recursion_limit(depth: int) -> None:
    needed = depth + _RECURSION_MARGIN
    if sys.getrecursionlimit() < needed:
        sys.setrecursionlimit(needed)


# ─── Public API ───────────────────────────────────────────────────────────────


def solve(
    initial_multiset: RankMultiset | Sequence[int],
    target_threshold: int,
    *,
    initial_total: int = 0,
    inclusive: bool = False,
    memo: MemoCache | None = None,
    check_mass: bool = True,
    tolerance: float = MASS_TOLERANCE,
    max_states: int | None = None,
) -> OutcomeDistribution:
    """Compute the exact joint distribution of (final total, cards drawn).

    Args:
        initial_multiset: Starting deck — a RankMultiset, or per-rank counts
                          for the default ranks 1..10.
        target_threshold: Target the running total must pass.
        initial_total:    Total already accumulated before the first draw.
        inclusive:        If True, stop once total >= target instead of
                          total > target.
        memo:             Optional cache to fill (and reuse across solves of
                          the same rank values and stop level).  A fresh one
                          is used when None.
        check_mass:       If True, verify every solved state sums to 1.
        tolerance:        Mass tolerance for ``check_mass``.
        max_states:       If set, refuse to start when
                          ``estimate_state_count`` exceeds it.

    Returns:
        Dict mapping ``(final_total, draws)`` to probability.  A fresh dict
        the caller may mutate.

    Raises:
        ValueError:                 Invalid deck, target or initial total.
        StateSpaceTooLargeError:    State count above ``max_states``.
        DistributionIntegrityError: A state's mass drifted from 1.

    Examples:
        >>> solve(RankMultiset((1,), values=(5,)), 0)
        {(5, 1): 1.0}
    """
    multiset = _as_multiset(initial_multiset)
    validate_problem(multiset, target_threshold, initial_total, inclusive)

    if max_states is not None:
        n_states = estimate_state_count(multiset, target_threshold, initial_total, inclusive)
        if n_states > max_states:
            raise StateSpaceTooLargeError(
                f"Problem needs {n_states:,} memoized states; limit is {max_states:,}."
            )

    stop = stop_level(target_threshold, inclusive)
    canon = StateCanonicalizer.for_counts(multiset.counts)
    if memo is None:
        memo = MemoCache()
    memo.bind((multiset.values, stop, canon.signature))

    problem = _Problem(
        values=multiset.values,
        stop=stop,
        canon=canon,
        check_mass=check_mass,
        tolerance=tolerance,
    )
    _ensure_recursion_limit(_max_depth(multiset, stop - initial_total))

    dist = _solve_state(
        multiset.counts,
        canon.pack(multiset.counts),
        initial_total,
        multiset.cards_remaining,
        problem,
        memo,
    )
    return dict(dist)


@dataclass
class SolverRun:
    """One exact solve together with its cache statistics.

    Attributes:
        distribution: Joint ``{(final_total, draws): prob}``.
        multiset:     Starting deck.
        target:       Target threshold.
        inclusive:    Stopping rule used.
        n_states:     Memoized (non-terminal) states after the solve.
        cache_hits:   Memo lookups answered from the cache.
        cache_misses: Memo lookups that required solving the state.
        elapsed_s:    Wall-clock seconds spent in ``solve``.
    """

    distribution: OutcomeDistribution
    multiset: RankMultiset
    target: int
    inclusive: bool
    n_states: int
    cache_hits: int
    cache_misses: int
    elapsed_s: float

    def __str__(self) -> str:
        rule = ">=" if self.inclusive else ">"
        return (
            f"Cards: {self.multiset.cards_remaining} | "
            f"Stop when total {rule} {self.target} | "
            f"States: {self.n_states:,} | "
            f"Cache hits: {self.cache_hits:,} | "
            f"Outcomes: {len(self.distribution)} | "
            f"Time: {self.elapsed_s:.2f}s"
        )


def run_exact_solver(
    initial_multiset: RankMultiset | Sequence[int],
    target_threshold: int = DEFAULT_TARGET,
    *,
    inclusive: bool = False,
    max_states: int | None = None,
) -> SolverRun:
    """Solve with a fresh cache and return the distribution plus statistics."""
    multiset = _as_multiset(initial_multiset)
    memo = MemoCache()
    t0 = time.perf_counter()
    dist = solve(
        multiset,
        target_threshold,
        inclusive=inclusive,
        memo=memo,
        max_states=max_states,
    )
    elapsed = time.perf_counter() - t0
    return SolverRun(
        distribution=dist,
        multiset=multiset,
        target=target_threshold,
        inclusive=inclusive,
        n_states=len(memo),
        cache_hits=memo.hits,
        cache_misses=memo.misses,
        elapsed_s=elapsed,
    )


# ─── __main__ ─────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    from src.analysis.aggregator import summarize
    from src.analysis.distribution_report import print_exact_report

    preset = sys.argv[1] if len(sys.argv) > 1 else "inflated_tens"
    target = int(sys.argv[2]) if len(sys.argv) > 2 else DEFAULT_TARGET

    deck = RankMultiset.preset(preset)
    print(f"Exact overshoot solver — deck '{preset}' ({deck.cards_remaining} cards)")
    print(f"Stop when total > {target}")
    print(f"Estimated states: {estimate_state_count(deck, target):,}")

    run = run_exact_solver(deck, target)
    print(run)
    print_exact_report(
        summarize(run.distribution),
        title=f"Deck '{preset}', target {target}",
        n_states=run.n_states,
    )
