"""
Marginals and summary statistics of a joint overshoot distribution.

The exact solver returns ``{(final_total, draws): prob}``.  This module
projects it onto each axis:

    total_distribution(dist)   — {final_total: prob}, summed over draw counts
    length_distribution(dist)  — {draws: prob}, summed over final totals

and derives expectations and spreads.  Both marginals must carry mass 1; a
deviation means an accumulation defect upstream and raises
DistributionIntegrityError rather than being renormalised away.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from src.solvers.exact_dp import MASS_TOLERANCE, DistributionIntegrityError
from src.solvers.memo import OutcomeDistribution

# ─── Result type ──────────────────────────────────────────────────────────────


@dataclass
class DistributionSummary:
    """Marginals and moments of one joint distribution.

    Attributes:
        total_dist:     {final_total: prob}, sorted by total.
        length_dist:    {draws: prob}, sorted by draw count.
        expected_total: Σ total · P(total).
        expected_draws: Σ draws · P(draws).
        std_total:      Standard deviation of the final total.
        std_draws:      Standard deviation of the draw count.
        total_mass:     Σ P(total) — 1 within tolerance.
        length_mass:    Σ P(draws) — 1 within tolerance.
    """

    total_dist: dict[int, float]
    length_dist: dict[int, float]
    expected_total: float
    expected_draws: float
    std_total: float
    std_draws: float
    total_mass: float
    length_mass: float

    def __str__(self) -> str:
        return (
            f"E[total]: {self.expected_total:.6f} (sd {self.std_total:.4f}) | "
            f"E[draws]: {self.expected_draws:.6f} (sd {self.std_draws:.4f}) | "
            f"Totals: {min(self.total_dist)}–{max(self.total_dist)} | "
            f"Draws: {min(self.length_dist)}–{max(self.length_dist)}"
        )


# ─── Marginals ────────────────────────────────────────────────────────────────


def _marginal(dist: OutcomeDistribution, axis: int) -> dict[int, float]:
    parts: dict[int, list[float]] = {}
    for outcome, prob in dist.items():
        parts.setdefault(outcome[axis], []).append(prob)
    return {k: math.fsum(parts[k]) for k in sorted(parts)}


def total_distribution(dist: OutcomeDistribution) -> dict[int, float]:
    """Final-total marginal, sorted by total.

    Examples:
        >>> total_distribution({(31, 4): 0.25, (31, 5): 0.25, (33, 4): 0.5})
        {31: 0.5, 33: 0.5}
    """
    return _marginal(dist, 0)


def length_distribution(dist: OutcomeDistribution) -> dict[int, float]:
    """Draw-count marginal, sorted by number of draws.

    Examples:
        >>> length_distribution({(31, 4): 0.25, (31, 5): 0.25, (33, 4): 0.5})
        {4: 0.75, 5: 0.25}
    """
    return _marginal(dist, 1)


# ─── Moments ──────────────────────────────────────────────────────────────────


def expectation(marginal: dict[int, float]) -> float:
    """Probability-weighted mean of a marginal.

    Examples:
        >>> expectation({1: 0.5, 3: 0.5})
        2.0
    """
    return math.fsum(k * p for k, p in marginal.items())


def standard_deviation(marginal: dict[int, float]) -> float:
    """Standard deviation of a marginal (population form; weights are probabilities)."""
    keys = np.fromiter(marginal.keys(), dtype=np.float64, count=len(marginal))
    probs = np.fromiter(marginal.values(), dtype=np.float64, count=len(marginal))
    mean = float(np.dot(keys, probs))
    variance = float(np.dot((keys - mean) ** 2, probs))
    return math.sqrt(max(variance, 0.0))


def verify_mass(
    marginal: dict[int, float],
    label: str,
    tolerance: float = MASS_TOLERANCE,
) -> float:
    """Return the mass of a marginal, raising if it is not 1.

    Raises:
        DistributionIntegrityError: If |mass − 1| > tolerance.
    """
    mass = math.fsum(marginal.values())
    if abs(mass - 1.0) > tolerance:
        raise DistributionIntegrityError(
            f"{label} distribution sums to {mass!r}, expected 1 within {tolerance:g}; "
            "the joint distribution was accumulated incorrectly."
        )
    return mass


# ─── Public API ───────────────────────────────────────────────────────────────


def summarize(
    dist: OutcomeDistribution,
    tolerance: float = MASS_TOLERANCE,
) -> DistributionSummary:
    """Build both marginals, verify their mass and compute their moments.

    Args:
        dist:      Joint distribution from ``exact_dp.solve``.
        tolerance: Mass tolerance for each marginal.

    Returns:
        DistributionSummary.

    Raises:
        ValueError:                 If the distribution is empty.
        DistributionIntegrityError: If either marginal does not sum to 1.
    """
    if not dist:
        raise ValueError("Cannot summarize an empty distribution.")

    total_dist = total_distribution(dist)
    length_dist = length_distribution(dist)
    total_mass = verify_mass(total_dist, "Final-total", tolerance)
    length_mass = verify_mass(length_dist, "Draw-count", tolerance)

    return DistributionSummary(
        total_dist=total_dist,
        length_dist=length_dist,
        expected_total=expectation(total_dist),
        expected_draws=expectation(length_dist),
        std_total=standard_deviation(total_dist),
        std_draws=standard_deviation(length_dist),
        total_mass=total_mass,
        length_mass=length_mass,
    )


def joint_matrix(
    dist: OutcomeDistribution,
) -> tuple[list[int], list[int], np.ndarray]:
    """Lay the joint distribution out as a dense matrix.

    Returns:
        (totals, lengths, matrix) where ``matrix[r, c]`` is
        P(final total = totals[r], draws = lengths[c]).  Unreachable cells
        are 0.0.  Both axes are contiguous ranges between the smallest and
        largest observed value.

    Examples:
        >>> totals, lengths, m = joint_matrix({(4, 2): 0.5, (5, 3): 0.5})
        >>> totals, lengths, m.shape
        ([4, 5], [2, 3], (2, 2))
    """
    if not dist:
        raise ValueError("Cannot lay out an empty distribution.")
    t_lo = min(t for t, _ in dist)
    t_hi = max(t for t, _ in dist)
    n_lo = min(n for _, n in dist)
    n_hi = max(n for _, n in dist)
    totals = list(range(t_lo, t_hi + 1))
    lengths = list(range(n_lo, n_hi + 1))

    matrix = np.zeros((len(totals), len(lengths)), dtype=np.float64)
    for (total, draws), prob in dist.items():
        matrix[total - t_lo, draws - n_lo] += prob
    return totals, lengths, matrix
