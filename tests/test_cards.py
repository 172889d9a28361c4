"""Tests for src/engine/cards.py — rank constants, presets, card-list helpers."""

from __future__ import annotations

import pytest

from src.engine.cards import (
    DECK_PRESETS,
    DEFAULT_TARGET,
    FORTY_CARD_COUNTS,
    INFLATED_TENS_COUNTS,
    NUM_RANKS,
    RANK_VALUES,
    SHORT_DECK_COUNTS,
    SIX_DECK_SHOE_COUNTS,
    cards_from_counts,
    counts_from_cards,
    preset_counts,
    rank_index,
    rank_value,
)


class TestConstants:
    def test_rank_values(self):
        assert RANK_VALUES == (1, 2, 3, 4, 5, 6, 7, 8, 9, 10)

    def test_num_ranks(self):
        assert NUM_RANKS == 10

    def test_default_target(self):
        assert DEFAULT_TARGET == 30


class TestPresets:
    def test_forty_card_deck(self):
        assert sum(FORTY_CARD_COUNTS) == 40
        assert set(FORTY_CARD_COUNTS) == {4}

    def test_inflated_tens_deck(self):
        assert sum(INFLATED_TENS_COUNTS) == 48
        assert INFLATED_TENS_COUNTS[9] == 12
        assert INFLATED_TENS_COUNTS[:9] == (4,) * 9

    def test_short_deck(self):
        assert sum(SHORT_DECK_COUNTS) == 40
        assert SHORT_DECK_COUNTS[7] == 0
        assert SHORT_DECK_COUNTS[8] == 0
        assert SHORT_DECK_COUNTS[9] == 12

    def test_six_deck_shoe(self):
        assert sum(SIX_DECK_SHOE_COUNTS) == 312
        assert SIX_DECK_SHOE_COUNTS[:9] == (24,) * 9
        assert SIX_DECK_SHOE_COUNTS[9] == 96

    def test_all_presets_have_one_count_per_rank(self):
        for name, counts in DECK_PRESETS.items():
            assert len(counts) == NUM_RANKS, name

    def test_preset_counts_lookup(self):
        assert preset_counts("forty") == FORTY_CARD_COUNTS

    def test_unknown_preset_raises(self):
        with pytest.raises(ValueError, match="Unknown deck preset"):
            preset_counts("pinochle")


class TestRankLookup:
    def test_rank_value(self):
        assert rank_value(0) == 1
        assert rank_value(9) == 10

    def test_rank_index(self):
        assert rank_index(1) == 0
        assert rank_index(10) == 9

    def test_round_trip(self):
        for i in range(NUM_RANKS):
            assert rank_index(rank_value(i)) == i

    def test_custom_values(self):
        assert rank_index(7, values=(2, 7, 11)) == 1

    def test_missing_value_raises(self):
        with pytest.raises(ValueError, match="No rank has value 11"):
            rank_index(11)


class TestCardListConversion:
    def test_counts_from_cards(self):
        assert counts_from_cards([10, 10, 1, 3]) == (1, 0, 1, 0, 0, 0, 0, 0, 0, 2)

    def test_counts_from_empty(self):
        assert counts_from_cards([]) == (0,) * 10

    def test_cards_from_counts_rank_order(self):
        assert cards_from_counts((2, 0, 1), values=(1, 2, 3)) == [1, 1, 3]

    def test_full_deck_expansion(self):
        cards = cards_from_counts(INFLATED_TENS_COUNTS)
        assert len(cards) == 48
        assert cards.count(10) == 12
        assert sum(cards) == 4 * 45 + 120

    def test_unknown_card_value_raises(self):
        with pytest.raises(ValueError):
            counts_from_cards([12])
