"""
Memo cache for the exact solver: canonical state key → outcome distribution.

Entries are written once and never replaced or evicted.  A state's
distribution is a pure function of the state, so a repeated insert carries
the same value and is ignored.

Keys are only meaningful for one problem — the same rank values, stop level
and bit-field width.  ``bind`` records that signature on first use and
rejects a different one afterwards.

Not thread-safe.
"""

from __future__ import annotations

from collections.abc import Hashable

OutcomeDistribution = dict[tuple[int, int], float]


class MemoCache:
    """Dict-backed store of solved states with hit/miss counters.

    Examples:
        >>> memo = MemoCache()
        >>> memo.lookup(7) is None
        True
        >>> memo.insert(7, {(31, 1): 1.0})
        >>> memo.lookup(7)
        {(31, 1): 1.0}
        >>> memo.hits, memo.misses
        (1, 1)
    """

    def __init__(self) -> None:
        self._entries: dict[int, OutcomeDistribution] = {}
        self._signature: Hashable | None = None
        self.hits: int = 0
        self.misses: int = 0

    def bind(self, signature: Hashable) -> None:
        """Tie the cache to one problem signature.

        Raises:
            ValueError: If the cache is already bound to a different signature.
        """
        if self._signature is None:
            self._signature = signature
        elif self._signature != signature:
            raise ValueError(
                f"Memo cache was built for problem {self._signature!r} and cannot be "
                f"reused for {signature!r}; its state keys would collide."
            )

    @property
    def signature(self) -> Hashable | None:
        return self._signature

    def lookup(self, key: int) -> OutcomeDistribution | None:
        """Return the cached distribution, or None.  Callers must not mutate it."""
        dist = self._entries.get(key)
        if dist is None:
            self.misses += 1
        else:
            self.hits += 1
        return dist

    def insert(self, key: int, dist: OutcomeDistribution) -> None:
        # First insertion wins.
        self._entries.setdefault(key, dist)

    def discard(self, key: int) -> None:
        """Drop one entry so its subtree is recomputed on the next visit."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
        self._signature = None
        self.hits = 0
        self.misses = 0

    def keys(self):
        return self._entries.keys()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"MemoCache(entries={len(self)}, hits={self.hits}, misses={self.misses})"
