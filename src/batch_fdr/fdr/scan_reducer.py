"""
Scan reducer - keep a single best hit per MS/MS scan.

Search engines report several candidate peptides per spectrum. Only the
best-scoring one takes part in FDR estimation. When a decoy and a target
tie on score, the target always wins, so input order can never let a decoy
claim a scan.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable

from batch_fdr.model.hit import PeptideHit, ScorePolarity

logger = logging.getLogger(__name__)


@dataclass
class ScanReduction:
    """Result of reducing one file's hits to one per scan."""

    hits: Dict[int, PeptideHit] = field(default_factory=dict)
    n_input_hits: int = 0

    @property
    def n_scans(self) -> int:
        return len(self.hits)

    @property
    def n_phospho_scans(self) -> int:
        """Scans whose surviving hit carries a phosphorylation."""
        return sum(1 for hit in self.hits.values() if hit.is_phospho)

    def ordered_hits(self):
        """Retained hits ordered by scan number."""
        return [self.hits[scan] for scan in sorted(self.hits)]


def replaces(candidate: PeptideHit, retained: PeptideHit, polarity: ScorePolarity) -> bool:
    """
    Whether ``candidate`` should replace the hit retained for its scan.

    Args:
        candidate: Newly seen hit
        retained: Hit currently kept for the same scan
        polarity: Score direction

    Returns:
        True for a strictly better score, or an equal score where a target
        displaces a decoy. Everything else keeps the first-seen hit.
    """
    if polarity.is_better(candidate.score, retained.score):
        return True
    return candidate.score == retained.score and retained.is_decoy and not candidate.is_decoy


class ScanReducer:
    """Collapses competing hits of the same scan to the single best hit."""

    def __init__(self, polarity: ScorePolarity):
        self.polarity = polarity
        self.reduction = ScanReduction()

    def add(self, hit: PeptideHit) -> None:
        """Offer one hit; hits are processed in input order."""
        self.reduction.n_input_hits += 1
        retained = self.reduction.hits.get(hit.scan_number)
        if retained is None or replaces(hit, retained, self.polarity):
            self.reduction.hits[hit.scan_number] = hit

    def add_all(self, hits: Iterable[PeptideHit]) -> "ScanReducer":
        for hit in hits:
            self.add(hit)
        return self

    def result(self) -> ScanReduction:
        logger.debug(
            f"Reduced {self.reduction.n_input_hits} hits to {self.reduction.n_scans} scans"
        )
        return self.reduction


def reduce_scans(hits: Iterable[PeptideHit], polarity: ScorePolarity) -> ScanReduction:
    """Reduce ``hits`` (in input order) to one hit per scan."""
    return ScanReducer(polarity).add_all(hits).result()
