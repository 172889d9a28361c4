"""Tests for src/solvers/state_key.py — bit-packed state keys."""

from __future__ import annotations

import pytest

from src.engine.cards import INFLATED_TENS_COUNTS
from src.solvers.state_key import StateCanonicalizer, bits_for_count


class TestBitsForCount:
    @pytest.mark.parametrize(
        "max_count, bits",
        [(0, 1), (1, 1), (2, 2), (3, 2), (4, 3), (7, 3), (8, 4), (12, 4), (16, 5)],
    )
    def test_width(self, max_count, bits):
        assert bits_for_count(max_count) == bits

    def test_negative_raises(self):
        with pytest.raises(ValueError):
            bits_for_count(-1)


class TestPackUnpack:
    def test_round_trip(self):
        canon = StateCanonicalizer(num_ranks=3, max_count=4)
        for counts in [(0, 0, 0), (4, 4, 4), (2, 0, 4), (1, 3, 0)]:
            assert canon.unpack(canon.pack(counts)) == counts

    def test_rank_zero_in_low_bits(self):
        canon = StateCanonicalizer(num_ranks=2, max_count=3)
        assert canon.bits == 2
        assert canon.pack((1, 0)) == 0b01
        assert canon.pack((0, 1)) == 0b0100

    def test_distinct_counts_give_distinct_keys(self):
        canon = StateCanonicalizer(num_ranks=3, max_count=2)
        keys = {
            canon.pack((a, b, c))
            for a in range(3)
            for b in range(3)
            for c in range(3)
        }
        assert len(keys) == 27

    def test_inflated_deck_fits(self):
        canon = StateCanonicalizer.for_counts(INFLATED_TENS_COUNTS)
        assert canon.bits == 4
        assert canon.counts_width == 40
        assert canon.unpack(canon.pack(INFLATED_TENS_COUNTS)) == INFLATED_TENS_COUNTS

    def test_for_counts_of_empty_deck(self):
        canon = StateCanonicalizer.for_counts((0, 0, 0))
        assert canon.bits == 1
        assert canon.pack((0, 0, 0)) == 0

    def test_zero_ranks_rejected(self):
        with pytest.raises(ValueError):
            StateCanonicalizer(num_ranks=0, max_count=4)


class TestFits:
    def test_counts_within_width(self):
        canon = StateCanonicalizer(num_ranks=2, max_count=4)
        assert canon.fits((4, 7))  # 3-bit slots hold up to 7

    def test_count_too_large(self):
        canon = StateCanonicalizer(num_ranks=2, max_count=4)
        assert not canon.fits((8, 0))

    def test_wrong_length(self):
        canon = StateCanonicalizer(num_ranks=2, max_count=4)
        assert not canon.fits((1, 1, 1))


class TestIncrementalUpdate:
    def test_rank_step_removes_one_card(self):
        canon = StateCanonicalizer.for_counts(INFLATED_TENS_COUNTS)
        key = canon.pack(INFLATED_TENS_COUNTS)
        for rank in range(10):
            after = list(INFLATED_TENS_COUNTS)
            after[rank] -= 1
            assert key - canon.rank_step(rank) == canon.pack(after)

    def test_rank_step_down_to_zero(self):
        canon = StateCanonicalizer(num_ranks=3, max_count=4)
        key = canon.pack((1, 4, 2))
        key -= canon.rank_step(0)
        assert canon.unpack(key) == (0, 4, 2)

    def test_count_at(self):
        canon = StateCanonicalizer(num_ranks=3, max_count=12)
        key = canon.pack((5, 12, 0))
        assert [canon.count_at(key, i) for i in range(3)] == [5, 12, 0]


class TestStateKey:
    def test_split_inverts_state_key(self):
        canon = StateCanonicalizer(num_ranks=3, max_count=4)
        counts_key = canon.pack((2, 0, 4))
        assert canon.split_state_key(canon.state_key(counts_key, 17)) == ((2, 0, 4), 17)

    def test_same_counts_different_totals_distinct(self):
        canon = StateCanonicalizer(num_ranks=3, max_count=4)
        counts_key = canon.pack((1, 1, 1))
        assert canon.state_key(counts_key, 3) != canon.state_key(counts_key, 4)

    def test_total_does_not_overlap_counts(self):
        canon = StateCanonicalizer(num_ranks=2, max_count=3)
        full = canon.pack((3, 3))
        assert canon.state_key(full, 0) == full
        assert canon.state_key(0, 1) > full

    def test_signature(self):
        assert StateCanonicalizer(10, 12).signature == (10, 4)
        assert StateCanonicalizer(10, 4).signature != StateCanonicalizer(10, 12).signature

    def test_repr(self):
        assert repr(StateCanonicalizer(3, 4)) == "StateCanonicalizer(num_ranks=3, bits=3)"
