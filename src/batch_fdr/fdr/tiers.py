"""
Tier walking shared by calibration, q-value computation and the threshold
search.

A tier is a run of consecutive hits sharing the same comparison key. Ties
are always resolved together: cumulative counts are only evaluated once
the last hit of a tier has been counted.
"""

from typing import Callable, Hashable, Iterator, List, Set, Tuple

from batch_fdr.model.hit import PeptideHit


class CumulativeCounts:
    """Running target and decoy counts, redundant or by distinct sequence."""

    def __init__(self, unique: bool = False):
        self.unique = unique
        self.n_targets = 0
        self.n_decoys = 0
        self._target_sequences: Set[str] = set()
        self._decoy_sequences: Set[str] = set()

    def add(self, hit: PeptideHit) -> None:
        if hit.is_decoy:
            self.n_decoys += 1
            self._decoy_sequences.add(hit.sequence)
        else:
            self.n_targets += 1
            self._target_sequences.add(hit.sequence)

    @property
    def targets(self) -> int:
        return len(self._target_sequences) if self.unique else self.n_targets

    @property
    def decoys(self) -> int:
        return len(self._decoy_sequences) if self.unique else self.n_decoys


def iter_tiers(
    hits: List[PeptideHit], key: Callable[[PeptideHit], Hashable]
) -> Iterator[Tuple[int, int]]:
    """
    Yield ``(start, end)`` index ranges of equal-key runs in ``hits``.

    ``hits`` must already be sorted so that equal keys are adjacent.
    """
    start = 0
    n = len(hits)
    while start < n:
        end = start + 1
        current = key(hits[start])
        while end < n and key(hits[end]) == current:
            end += 1
        yield start, end
        start = end
