"""
Rank constants, preset decks, and card-list helpers.

A card is represented by its point value (1–10 in the standard ranks).  Decks
are described by per-rank counts aligned with RANK_VALUES:

    counts[i] = number of cards whose value is RANK_VALUES[i]

Face cards are not modelled separately — a deck that plays J/Q/K as tens
simply inflates the count of the 10 rank (see INFLATED_TENS_COUNTS).
"""

from __future__ import annotations

from collections.abc import Iterable

# Point value per rank index: index 0 = 1 (ace low), ..., index 9 = 10.
RANK_VALUES: tuple[int, ...] = (1, 2, 3, 4, 5, 6, 7, 8, 9, 10)

NUM_RANKS: int = len(RANK_VALUES)

DEFAULT_TARGET: int = 30
"""Threshold used by the preset runs: keep drawing until the total passes 30."""

# ─── Preset decks ─────────────────────────────────────────────────────────────

FORTY_CARD_COUNTS: tuple[int, ...] = (4,) * 10
"""Four each of 1..10 — a 52-card deck with the face cards removed."""

INFLATED_TENS_COUNTS: tuple[int, ...] = (4,) * 9 + (12,)
"""Four each of 1..9 plus twelve tens — 48 cards, tens weighted three to one."""

SHORT_DECK_COUNTS: tuple[int, ...] = (4,) * 7 + (0, 0) + (12,)
"""Four each of 1..7, no 8s or 9s, twelve tens — 40 cards."""

SIX_DECK_SHOE_COUNTS: tuple[int, ...] = (24,) * 9 + (96,)
"""Six 52-card decks, J/Q/K played as 10: 24 each of 1..9 and 96 tens — 312 cards."""

DECK_PRESETS: dict[str, tuple[int, ...]] = {
    "forty": FORTY_CARD_COUNTS,
    "inflated_tens": INFLATED_TENS_COUNTS,
    "short_deck": SHORT_DECK_COUNTS,
    "six_deck_shoe": SIX_DECK_SHOE_COUNTS,
}


def rank_value(rank_index: int, values: tuple[int, ...] = RANK_VALUES) -> int:
    """Return the point value of a rank index.

    Examples:
        >>> rank_value(0)
        1
        >>> rank_value(9)
        10
    """
    return values[rank_index]


def rank_index(value: int, values: tuple[int, ...] = RANK_VALUES) -> int:
    """Return the rank index holding a point value.

    Raises:
        ValueError: If no rank carries that value.

    Examples:
        >>> rank_index(1)
        0
        >>> rank_index(10)
        9
    """
    try:
        return values.index(value)
    except ValueError:
        raise ValueError(f"No rank has value {value}; ranks are {values}.") from None


def counts_from_cards(
    cards: Iterable[int],
    values: tuple[int, ...] = RANK_VALUES,
) -> tuple[int, ...]:
    """Collapse a list of card values into per-rank counts.

    Examples:
        >>> counts_from_cards([10, 10, 1, 3])
        (1, 0, 1, 0, 0, 0, 0, 0, 0, 2)
    """
    counts = [0] * len(values)
    for card in cards:
        counts[rank_index(card, values)] += 1
    return tuple(counts)


def cards_from_counts(
    counts: Iterable[int],
    values: tuple[int, ...] = RANK_VALUES,
) -> list[int]:
    """Expand per-rank counts into a flat list of card values (rank order).

    Examples:
        >>> cards_from_counts((2, 0, 1), values=(1, 2, 3))
        [1, 1, 3]
    """
    cards: list[int] = []
    for value, count in zip(values, counts):
        cards.extend([value] * count)
    return cards


def preset_counts(name: str) -> tuple[int, ...]:
    """Return the per-rank counts of a named preset deck.

    Raises:
        ValueError: If the preset name is unknown.

    Examples:
        >>> sum(preset_counts("inflated_tens"))
        48
    """
    try:
        return DECK_PRESETS[name]
    except KeyError:
        known = ", ".join(sorted(DECK_PRESETS))
        raise ValueError(f"Unknown deck preset {name!r}; choose one of: {known}.") from None
