"""
Uniqueness reducer - one best hit per peptide sequence.

Between two hits of the same sequence the lower q-value wins, then the
better score, then the smaller absolute adjusted mass error. A complete
tie keeps the hit seen first. The same reducer builds the per-file winner
maps and, fed with every file's winners, the batch-wide maps.
"""

from typing import Dict, Iterable

from batch_fdr.model.hit import PeptideHit, ScorePolarity, SequenceWinners


def outranks(candidate: PeptideHit, current: PeptideHit, polarity: ScorePolarity) -> bool:
    """Whether ``candidate`` should replace ``current`` as a sequence winner."""
    if candidate.q_value < current.q_value:
        return True
    if candidate.q_value != current.q_value:
        return False
    if polarity.is_better(candidate.score, current.score):
        return True
    if candidate.score != current.score:
        return False
    return abs(candidate.adjusted_mass_error_ppm) < abs(current.adjusted_mass_error_ppm)


def _offer(winners: Dict[str, PeptideHit], hit: PeptideHit, polarity: ScorePolarity) -> None:
    current = winners.get(hit.sequence)
    if current is None or outranks(hit, current, polarity):
        winners[hit.sequence] = hit


def reduce_unique(hits: Iterable[PeptideHit], polarity: ScorePolarity) -> SequenceWinners:
    """
    Reduce hits to one winner per sequence.

    Args:
        hits: Hits in processing order (targets and decoys mixed)
        polarity: Score direction

    Returns:
        SequenceWinners with separate target and decoy maps
    """
    winners = SequenceWinners()
    for hit in hits:
        _offer(winners.decoys if hit.is_decoy else winners.targets, hit, polarity)
    return winners


def merge_unique(
    per_file: Iterable[SequenceWinners], polarity: ScorePolarity
) -> SequenceWinners:
    """Batch-wide winners from per-file winners, files in input order."""
    overall = SequenceWinners()
    for winners in per_file:
        for hit in winners.sorted_targets():
            _offer(overall.targets, hit, polarity)
        for hit in winners.sorted_decoys():
            _offer(overall.decoys, hit, polarity)
    return overall
