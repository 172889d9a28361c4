"""
Rank multiset (remaining deck state) and physical deck arrays.

Two deck representations are used:

    RankMultiset  — per-rank remaining counts.  Immutable; the exact solver
                    and the validity checks work on this form.
    np.ndarray    — one int16 entry per physical card (its point value).
                    Used by the Monte Carlo simulator, which shuffles it in
                    place.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .cards import RANK_VALUES, cards_from_counts, counts_from_cards, preset_counts


def _is_integer(x: object) -> bool:
    return isinstance(x, (int, np.integer)) and not isinstance(x, bool)


@dataclass(frozen=True)
class RankMultiset:
    """Remaining cards, counted per rank.

    Attributes:
        counts: Number of cards left for each rank; aligned with ``values``.
        values: Point value of each rank.  Distinct and positive.

    Examples:
        >>> deck = RankMultiset((2, 1, 1), values=(1, 2, 3))
        >>> deck.cards_remaining
        4
        >>> deck.draw(0).counts
        (1, 1, 1)
    """

    counts: tuple[int, ...]
    values: tuple[int, ...] = RANK_VALUES

    def __post_init__(self) -> None:
        values = tuple(self.values)
        counts = tuple(self.counts)

        if len(counts) != len(values):
            raise ValueError(
                f"Got {len(counts)} counts for {len(values)} ranks; "
                "counts and values must have the same length."
            )
        if len(values) == 0:
            raise ValueError("A deck needs at least one rank.")
        for value in values:
            if not _is_integer(value) or value <= 0:
                raise ValueError(f"Rank values must be positive integers; got {value!r}.")
        if len(set(values)) != len(values):
            raise ValueError(f"Rank values must be distinct; got {values}.")
        for value, count in zip(values, counts):
            if not _is_integer(count):
                raise ValueError(f"Count for rank {value} must be an integer; got {count!r}.")
            if count < 0:
                raise ValueError(f"Count for rank {value} is negative ({count}).")

        # NumPy integers are accepted but stored as plain ints so keys hash alike.
        object.__setattr__(self, "values", tuple(int(v) for v in values))
        object.__setattr__(self, "counts", tuple(int(c) for c in counts))

    # ─── Construction ──────────────────────────────────────────────────────

    @classmethod
    def from_cards(cls, cards: list[int], values: tuple[int, ...] = RANK_VALUES) -> RankMultiset:
        """Build a multiset from a list of card values.

        Examples:
            >>> RankMultiset.from_cards([1, 1, 10]).counts
            (2, 0, 0, 0, 0, 0, 0, 0, 0, 1)
        """
        return cls(counts_from_cards(cards, values), values)

    @classmethod
    def preset(cls, name: str) -> RankMultiset:
        """Build one of the named decks in ``cards.DECK_PRESETS``."""
        return cls(preset_counts(name))

    # ─── Queries ───────────────────────────────────────────────────────────

    @property
    def cards_remaining(self) -> int:
        return sum(self.counts)

    @property
    def is_empty(self) -> bool:
        return self.cards_remaining == 0

    @property
    def max_count(self) -> int:
        return max(self.counts)

    def total_value(self) -> int:
        """Sum of the point values of every remaining card."""
        return sum(v * c for v, c in zip(self.values, self.counts))

    def count(self, rank_index: int) -> int:
        return self.counts[rank_index]

    def present_ranks(self) -> list[int]:
        """Indices of ranks with at least one card left."""
        return [i for i, c in enumerate(self.counts) if c > 0]

    def draw_probability(self, rank_index: int) -> float:
        """Probability that a uniformly random remaining card has this rank.

        Raises:
            ValueError: If the deck is empty.
        """
        remaining = self.cards_remaining
        if remaining == 0:
            raise ValueError("Cannot draw from an empty deck.")
        return self.counts[rank_index] / remaining

    def is_within(self, initial: RankMultiset) -> bool:
        """True if every count is at most the matching count of ``initial``."""
        return self.values == initial.values and all(
            c <= c0 for c, c0 in zip(self.counts, initial.counts)
        )

    # ─── Transitions ───────────────────────────────────────────────────────

    def draw(self, rank_index: int) -> RankMultiset:
        """Return the multiset left after removing one card of a rank.

        Raises:
            ValueError: If no card of that rank remains.
        """
        if self.counts[rank_index] == 0:
            raise ValueError(f"No card of value {self.values[rank_index]} left to draw.")
        counts = list(self.counts)
        counts[rank_index] -= 1
        return RankMultiset(tuple(counts), self.values)

    def to_cards(self) -> list[int]:
        """Flat list of the remaining card values in rank order."""
        return cards_from_counts(self.counts, self.values)


# ─── Physical deck arrays ─────────────────────────────────────────────────────


def create_deck(multiset: RankMultiset) -> np.ndarray:
    """Create a physical deck: one int16 entry per card, holding its value.

    Examples:
        >>> deck = create_deck(RankMultiset.preset("forty"))
        >>> len(deck), int(deck.sum())
        (40, 220)
    """
    return np.array(multiset.to_cards(), dtype=np.int16)


def cards_remaining(deck: np.ndarray) -> int:
    """Return the number of physical cards in the deck array."""
    return int(deck.size)


def shuffle_deck(deck: np.ndarray) -> None:
    """Shuffle the deck array in place using the global NumPy RNG.

    Args:
        deck: Mutable deck array — modified in place.
    """
    np.random.shuffle(deck)
