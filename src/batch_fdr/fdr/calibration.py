"""
Mass calibration - per-file systematic precursor mass error.

Instrument calibration drifts shift every measured precursor mass of a run
by roughly the same amount. The offset is estimated as the median mass
error of a small, very high confidence subset: the target hits above the
score threshold that accepts the most targets at no more than
``MAXIMUM_FDR_FOR_SYSTEMATIC_PRECURSOR_MASS_ERROR`` percent FDR. That bound
is independent of the user FDR bound.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from batch_fdr.config import MAXIMUM_FDR_FOR_SYSTEMATIC_PRECURSOR_MASS_ERROR
from batch_fdr.fdr.tiers import CumulativeCounts, iter_tiers
from batch_fdr.model.hit import PeptideHit, ScorePolarity, fdr_percent

logger = logging.getLogger(__name__)


@dataclass
class CalibrationResult:
    """Preliminary threshold and systematic offset of one file."""

    score_threshold: float
    n_targets: int = 0
    n_decoys: int = 0
    fdr: float = math.nan
    systematic_error_ppm: float = 0.0
    n_calibrants: int = 0


def median(values: Sequence[float]) -> float:
    """Median of ``values``, 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.median(np.asarray(values, dtype=np.float64)))


def sort_by_score(hits: Sequence[PeptideHit], polarity: ScorePolarity) -> List[PeptideHit]:
    """Hits ordered best score first; scan number keeps the order stable."""
    return sorted(hits, key=lambda h: (polarity.sort_key(h.score), h.scan_number))


def find_preliminary_threshold(
    ranked: List[PeptideHit],
    polarity: ScorePolarity,
    max_fdr: float = MAXIMUM_FDR_FOR_SYSTEMATIC_PRECURSOR_MASS_ERROR,
) -> CalibrationResult:
    """
    Walk score tiers of ``ranked`` (best first) and pick the boundary with
    the most targets at ``fdr <= max_fdr``; ties go to the lower FDR.
    """
    result = CalibrationResult(score_threshold=polarity.best_sentinel)
    counts = CumulativeCounts(unique=False)

    for start, end in iter_tiers(ranked, key=lambda h: h.score):
        for hit in ranked[start:end]:
            counts.add(hit)

        fdr = fdr_percent(counts.decoys, counts.targets)
        if not fdr <= max_fdr:
            continue
        if counts.targets > result.n_targets or (
            counts.targets == result.n_targets and fdr < result.fdr
        ):
            result.score_threshold = ranked[start].score
            result.n_targets = counts.targets
            result.n_decoys = counts.decoys
            result.fdr = fdr

    return result


def estimate_systematic_error(
    hits: Sequence[PeptideHit], polarity: ScorePolarity
) -> CalibrationResult:
    """
    Estimate the systematic precursor mass error of one file.

    Args:
        hits: Scan-reduced hits of the file, in any order
        polarity: Score direction

    Returns:
        CalibrationResult whose ``systematic_error_ppm`` is the median raw
        mass error of the target hits at or above the preliminary threshold
    """
    ranked = sort_by_score(hits, polarity)
    result = find_preliminary_threshold(ranked, polarity)

    calibrant_errors = [
        hit.mass_error_ppm
        for hit in ranked
        if not hit.is_decoy and polarity.is_at_least_as_good(hit.score, result.score_threshold)
    ]
    result.n_calibrants = len(calibrant_errors)
    result.systematic_error_ppm = median(calibrant_errors)

    logger.info(
        f"Preliminary threshold {result.score_threshold}: {result.n_targets} targets, "
        f"{result.n_decoys} decoys, FDR {result.fdr:.3f}%; "
        f"systematic mass error {result.systematic_error_ppm:.3f} ppm "
        f"from {result.n_calibrants} targets"
    )
    return result


def apply_calibration(hits: Sequence[PeptideHit], systematic_error_ppm: float) -> None:
    """Set ``adjusted = raw - offset`` on every hit."""
    for hit in hits:
        hit.adjusted_mass_error_ppm = hit.mass_error_ppm - systematic_error_ppm


def calibrate(hits: Sequence[PeptideHit], polarity: ScorePolarity) -> CalibrationResult:
    """Estimate the offset of a file and apply it to all of its hits."""
    result = estimate_systematic_error(hits, polarity)
    apply_calibration(hits, result.systematic_error_ppm)
    return result
