"""
Q-value engine - monotone local FDR per hit.

Two separate passes:

1. ``assign_tier_fdrs`` walks score tiers best first and gives every hit of
   a tier the cumulative FDR at the end of that tier. A NaN FDR (no targets
   yet) leaves the tier unset; it is back-filled by the next tier that
   produces a value.
2. ``enforce_monotonicity`` sweeps from the worst hit to the best and
   clamps each q-value to the one of the next better hit, so that q-values
   never increase as the score improves.
"""

import logging
import math
from typing import List, Sequence

from batch_fdr.fdr.calibration import sort_by_score
from batch_fdr.fdr.tiers import CumulativeCounts, iter_tiers
from batch_fdr.model.hit import PeptideHit, ScorePolarity, fdr_percent

logger = logging.getLogger(__name__)


def assign_tier_fdrs(ranked: List[PeptideHit], unique: bool = False) -> None:
    """
    Assign the cumulative FDR (%) of each score tier to its hits.

    Args:
        ranked: Hits sorted best score first
        unique: Count distinct sequences instead of hits
    """
    counts = CumulativeCounts(unique=unique)

    for start, end in iter_tiers(ranked, key=lambda h: h.score):
        for hit in ranked[start:end]:
            counts.add(hit)

        q_value = fdr_percent(counts.decoys, counts.targets)
        for hit in ranked[start:end]:
            hit.q_value = q_value

        # Back-fill earlier tiers that ended without a defined value
        i = start - 1
        while i >= 0 and math.isnan(ranked[i].q_value):
            ranked[i].q_value = q_value
            i -= 1


def enforce_monotonicity(ranked: List[PeptideHit]) -> None:
    """Clamp q-values so they are non-increasing towards better scores."""
    for i in range(len(ranked) - 2, -1, -1):
        if ranked[i].q_value > ranked[i + 1].q_value:
            ranked[i].q_value = ranked[i + 1].q_value


def compute_q_values(
    hits: Sequence[PeptideHit], polarity: ScorePolarity, unique: bool = False
) -> List[PeptideHit]:
    """
    Compute q-values for one file's scan-reduced, calibrated hits.

    Args:
        hits: Hits of a single file
        polarity: Score direction
        unique: Count distinct sequences instead of hits

    Returns:
        The hits ranked best score first, each carrying its q-value
    """
    ranked = sort_by_score(hits, polarity)
    assign_tier_fdrs(ranked, unique=unique)
    enforce_monotonicity(ranked)

    n_undefined = sum(1 for hit in ranked if math.isnan(hit.q_value))
    if n_undefined:
        logger.warning(f"{n_undefined} hits have an undefined q-value (no targets at their rank)")
    return ranked
