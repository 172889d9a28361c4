"""
Shared pytest fixtures for overshoot solver tests.

Provides small hand-checkable decks (with their exact distributions worked
out by hand) and the preset decks.
"""

from __future__ import annotations

import pytest

from src.engine.deck import RankMultiset


def deck(*counts: int, values: tuple[int, ...] | None = None) -> RankMultiset:
    """Build a RankMultiset from counts; ranks default to 1..len(counts).

    Examples:
        >>> deck(2, 1, 1).values
        (1, 2, 3)
    """
    if values is None:
        values = tuple(range(1, len(counts) + 1))
    return RankMultiset(tuple(counts), values)


# Ranks 1, 2, 3 with counts 2, 1, 1 and target 3: the final total 4 is
# reached both after two cards (3+1, 1+3) and after three (1+1+2, 1+2+1, 2+1+1).
# Exact joint distribution, derived by hand:
MIXED_LENGTH_DECK: tuple[int, ...] = (2, 1, 1)
MIXED_LENGTH_TARGET: int = 3
MIXED_LENGTH_DIST: dict[tuple[int, int], float] = {
    (4, 2): 1 / 3,
    (5, 2): 1 / 6,
    (4, 3): 1 / 4,
    (5, 3): 1 / 12,
    (6, 3): 1 / 6,
}


@pytest.fixture
def mixed_length_deck() -> RankMultiset:
    return deck(*MIXED_LENGTH_DECK)


@pytest.fixture
def forty_deck() -> RankMultiset:
    return RankMultiset.preset("forty")


@pytest.fixture
def inflated_deck() -> RankMultiset:
    return RankMultiset.preset("inflated_tens")
