"""
State canonicalisation for the exact solver.

A remaining deck is packed into one Python int with a fixed-width bit field per
rank (rank 0 in the lowest bits):

    counts_key = counts[0] | counts[1] << w | counts[2] << 2w | ...

The accumulated total sits above the counts field, so a full solver state is a
single int as well:

    state_key = total << (w * num_ranks) | counts_key

The width ``w`` is the smallest number of bits that holds the largest initial
per-rank count.  Counts only ever decrease during a solve, so every derived
state fits once the initial deck fits.
"""

from __future__ import annotations

from collections.abc import Sequence


def bits_for_count(max_count: int) -> int:
    """Smallest field width (≥ 1 bit) able to store counts 0..max_count.

    Examples:
        >>> bits_for_count(4)
        3
        >>> bits_for_count(12)
        4
        >>> bits_for_count(0)
        1
    """
    if max_count < 0:
        raise ValueError(f"max_count must be non-negative; got {max_count}.")
    return max(1, max_count.bit_length())


class StateCanonicalizer:
    """Pack and unpack per-rank counts into fixed-width integer keys.

    Args:
        num_ranks: Number of rank slots in every multiset.
        max_count: Largest count any slot may hold.

    Examples:
        >>> canon = StateCanonicalizer(num_ranks=3, max_count=4)
        >>> key = canon.pack((2, 0, 4))
        >>> canon.unpack(key)
        (2, 0, 4)
        >>> canon.split_state_key(canon.state_key(key, 17))
        ((2, 0, 4), 17)
    """

    def __init__(self, num_ranks: int, max_count: int) -> None:
        if num_ranks <= 0:
            raise ValueError(f"num_ranks must be positive; got {num_ranks}.")
        self.num_ranks = num_ranks
        self.max_count = max_count
        self.bits = bits_for_count(max_count)
        self.mask = (1 << self.bits) - 1
        self.counts_width = self.bits * num_ranks
        self._steps = tuple(1 << (self.bits * i) for i in range(num_ranks))

    @classmethod
    def for_counts(cls, counts: Sequence[int]) -> StateCanonicalizer:
        """Canonicaliser sized for an initial deck."""
        return cls(num_ranks=len(counts), max_count=max(counts, default=0))

    def fits(self, counts: Sequence[int]) -> bool:
        """True if every count fits in the field width."""
        return len(counts) == self.num_ranks and all(0 <= c <= self.mask for c in counts)

    def pack(self, counts: Sequence[int]) -> int:
        key = 0
        for i, c in enumerate(counts):
            key |= c << (self.bits * i)
        return key

    def unpack(self, counts_key: int) -> tuple[int, ...]:
        counts = []
        for _ in range(self.num_ranks):
            counts.append(counts_key & self.mask)
            counts_key >>= self.bits
        return tuple(counts)

    def rank_step(self, rank_index: int) -> int:
        """Packed value of one card of a rank.

        Subtracting it from a counts key removes one card of that rank, as
        long as the slot is non-zero (no borrow crosses field boundaries).
        """
        return self._steps[rank_index]

    def count_at(self, counts_key: int, rank_index: int) -> int:
        return (counts_key >> (self.bits * rank_index)) & self.mask

    def state_key(self, counts_key: int, total: int) -> int:
        return (total << self.counts_width) | counts_key

    def split_state_key(self, key: int) -> tuple[tuple[int, ...], int]:
        """Inverse of state_key: return (counts, total)."""
        counts_key = key & ((1 << self.counts_width) - 1)
        return self.unpack(counts_key), key >> self.counts_width

    @property
    def signature(self) -> tuple[int, int]:
        """(num_ranks, bits) — two canonicalisers with equal signatures agree on every key."""
        return (self.num_ranks, self.bits)

    def __repr__(self) -> str:
        return f"StateCanonicalizer(num_ranks={self.num_ranks}, bits={self.bits})"
