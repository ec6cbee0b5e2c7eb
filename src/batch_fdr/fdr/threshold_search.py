"""
Global threshold search over precursor mass tolerance and q-value/score.

For every tolerance on the grid ``increment, 2 * increment, ... <= max``
the pooled hits within tolerance are ranked by (q-value, score) and the
(q-value, score) tiers are walked exactly like the q-value engine does.
The boundary with the most accepted targets at ``FDR <= bound`` wins, ties
going to the lower FDR. The grid is searched exhaustively because the FDR
is not monotone in the tolerance.

The winning triple is applied uniformly to every file of the batch.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from batch_fdr.fdr.tiers import CumulativeCounts, iter_tiers
from batch_fdr.model.hit import PeptideHit, ScorePolarity, fdr_percent

logger = logging.getLogger(__name__)

# Absorbs float error so that max / increment lands on the last grid point
_GRID_EPSILON = 1e-9


@dataclass
class ThresholdResult:
    """
    Global acceptance thresholds.

    When no tier satisfies the FDR bound, ``q_value_threshold`` stays at
    ``-inf``, ``score_threshold`` at the unreachable score sentinel and
    ``mass_tolerance_ppm`` at NaN, and ``accepts`` rejects every hit.
    """

    score_threshold: float
    polarity: ScorePolarity
    q_value_threshold: float = -math.inf
    mass_tolerance_ppm: float = math.nan
    n_targets: int = 0
    n_decoys: int = 0
    fdr: float = math.nan

    @property
    def found(self) -> bool:
        return not math.isnan(self.mass_tolerance_ppm)

    def accepts(self, hit: PeptideHit) -> bool:
        """Whether ``hit`` passes the (q-value, score, tolerance) triple."""
        passes_confidence = hit.q_value < self.q_value_threshold or (
            hit.q_value == self.q_value_threshold
            and self.polarity.is_at_least_as_good(hit.score, self.score_threshold)
        )
        return passes_confidence and abs(hit.adjusted_mass_error_ppm) <= self.mass_tolerance_ppm


def tolerance_grid(max_tolerance_ppm: float, increment_ppm: float) -> np.ndarray:
    """
    Tolerances searched, from one increment up to the maximum inclusive.

    Grid points are computed as multiples of the increment rather than by
    repeated addition.
    """
    if increment_ppm <= 0:
        raise ValueError(f"Tolerance increment must be positive, got {increment_ppm}")
    n_steps = int(math.floor(max_tolerance_ppm / increment_ppm + _GRID_EPSILON))
    return np.arange(1, n_steps + 1, dtype=np.float64) * increment_ppm


def rank_by_q_value(hits: Sequence[PeptideHit], polarity: ScorePolarity) -> List[PeptideHit]:
    """
    Hits ordered by q-value, then score (best first), then scan.

    Hits without a q-value (decoys of files with no targets) rank ahead of
    every defined q-value, so their decoys count at every boundary.
    """

    def key(hit: PeptideHit):
        undefined = math.isnan(hit.q_value)
        q_value = 0.0 if undefined else hit.q_value
        return (not undefined, q_value, polarity.sort_key(hit.score), hit.scan_number)

    return sorted(hits, key=key)


class GlobalThresholdSearch:
    """
    Exhaustive search for the triple maximizing accepted targets.

    Args:
        polarity: Score direction
        max_fdr: FDR bound (%)
        max_tolerance_ppm: Largest precursor mass tolerance searched
        increment_ppm: Tolerance grid step
        unique: Count distinct sequences instead of hits
    """

    def __init__(
        self,
        polarity: ScorePolarity,
        max_fdr: float,
        max_tolerance_ppm: float,
        increment_ppm: float,
        unique: bool = False,
    ):
        self.polarity = polarity
        self.max_fdr = max_fdr
        self.max_tolerance_ppm = max_tolerance_ppm
        self.increment_ppm = increment_ppm
        self.unique = unique

    def search(self, pool: Sequence[PeptideHit]) -> ThresholdResult:
        """
        Search the pooled hits of all files.

        Args:
            pool: Every retained hit of the batch, with q-values and
                adjusted mass errors set

        Returns:
            ThresholdResult; check ``found`` before relying on it
        """
        best = ThresholdResult(
            score_threshold=self.polarity.best_sentinel, polarity=self.polarity
        )

        ranked = rank_by_q_value(pool, self.polarity)

        for tolerance in tolerance_grid(self.max_tolerance_ppm, self.increment_ppm):
            tolerance = float(tolerance)
            within = [h for h in ranked if abs(h.adjusted_mass_error_ppm) <= tolerance]
            self._walk(within, tolerance, best)

        if best.found:
            logger.info(
                f"Global thresholds: q-value <= {best.q_value_threshold:.4f}%, "
                f"score {best.score_threshold}, tolerance ±{best.mass_tolerance_ppm} ppm "
                f"({best.n_targets} targets, {best.n_decoys} decoys, FDR {best.fdr:.3f}%)"
            )
        else:
            logger.warning(
                f"No threshold satisfies the {self.max_fdr}% FDR bound; no hits will be accepted"
            )
        return best

    def _walk(self, within: List[PeptideHit], tolerance: float, best: ThresholdResult) -> None:
        counts = CumulativeCounts(unique=self.unique)

        for start, end in iter_tiers(within, key=lambda h: (h.q_value, h.score)):
            for hit in within[start:end]:
                counts.add(hit)

            fdr = fdr_percent(counts.decoys, counts.targets)
            if not fdr <= self.max_fdr:
                continue
            if counts.targets > best.n_targets or (
                counts.targets == best.n_targets and fdr < best.fdr
            ):
                tier_hit = within[start]
                best.n_targets = counts.targets
                best.n_decoys = counts.decoys
                best.fdr = fdr
                best.q_value_threshold = tier_hit.q_value
                best.score_threshold = tier_hit.score
                best.mass_tolerance_ppm = tolerance
