"""
Tests for the mass calibration estimator.
"""

import math

import pytest

from batch_fdr.fdr.calibration import (
    apply_calibration,
    calibrate,
    estimate_systematic_error,
    find_preliminary_threshold,
    median,
    sort_by_score,
)
from batch_fdr.model.hit import ScorePolarity

from conftest import make_hit


LOWER = ScorePolarity(higher_is_better=False)
HIGHER = ScorePolarity(higher_is_better=True)


def crafted_sample():
    """
    Ten targets and one decoy, lower scores better.

    The decoy ranks sixth, so the last boundary at <= 1% FDR holds the five
    best targets only; their errors have median 4.0 ppm. The five targets
    behind the decoy carry large errors that must not leak into the offset.
    """
    errors_before = [2.0, 3.0, 4.0, 5.0, 100.0]
    hits = [
        make_hit(i + 1, f"T{i}", score=0.001 * (i + 1), mass_error_ppm=err)
        for i, err in enumerate(errors_before)
    ]
    hits.append(make_hit(6, "DECOY", score=0.0065, is_decoy=True, mass_error_ppm=-7.0))
    hits += [
        make_hit(7 + i, f"U{i}", score=0.01 * (i + 1), mass_error_ppm=-50.0)
        for i in range(5)
    ]
    return hits


class TestMedian:
    """Tests for the median helper."""

    def test_empty_is_zero(self):
        assert median([]) == 0.0

    def test_odd_and_even(self):
        assert median([3.0, 1.0, 2.0]) == 2.0
        assert median([4.0, 1.0, 2.0, 3.0]) == 2.5


class TestPreliminaryThreshold:
    """Tests for the preliminary (1% FDR) threshold."""

    def test_crafted_sample_threshold(self):
        ranked = sort_by_score(crafted_sample(), LOWER)
        result = find_preliminary_threshold(ranked, LOWER)

        assert result.n_targets == 5
        assert result.n_decoys == 0
        assert result.fdr == 0.0
        assert result.score_threshold == pytest.approx(0.005)

    def test_no_boundary_keeps_sentinel(self):
        hits = [make_hit(1, score=0.01, is_decoy=True), make_hit(2, score=0.02, is_decoy=True)]
        result = find_preliminary_threshold(sort_by_score(hits, LOWER), LOWER)

        assert result.score_threshold == -math.inf
        assert result.n_targets == 0
        assert math.isnan(result.fdr)

    def test_tied_scores_resolved_together(self):
        """A decoy tied with a target is counted in the same tier."""
        hits = [
            make_hit(1, "A", score=0.01),
            make_hit(2, "B", score=0.02),
            make_hit(3, "C", score=0.02, is_decoy=True),
        ]
        result = find_preliminary_threshold(sort_by_score(hits, LOWER), LOWER)

        assert result.n_targets == 1
        assert result.score_threshold == 0.01


class TestSystematicError:
    """Tests for the systematic offset and its application."""

    def test_crafted_offset(self):
        result = estimate_systematic_error(crafted_sample(), LOWER)

        assert result.systematic_error_ppm == pytest.approx(4.0)
        assert result.n_calibrants == 5

    def test_higher_is_better_offset(self):
        hits = [
            make_hit(1, "A", score=50.0, mass_error_ppm=1.0),
            make_hit(2, "B", score=40.0, mass_error_ppm=3.0),
            make_hit(3, "D", score=30.0, is_decoy=True, mass_error_ppm=9.0),
            make_hit(4, "C", score=20.0, mass_error_ppm=-40.0),
        ]
        result = estimate_systematic_error(hits, HIGHER)

        assert result.score_threshold == 40.0
        assert result.systematic_error_ppm == pytest.approx(2.0)

    def test_empty_subset_gives_zero_offset(self):
        hits = [make_hit(1, score=0.01, is_decoy=True, mass_error_ppm=5.0)]
        result = calibrate(hits, LOWER)

        assert result.systematic_error_ppm == 0.0
        assert hits[0].adjusted_mass_error_ppm == 5.0

    def test_adjusted_is_raw_minus_offset(self):
        hits = crafted_sample()
        calibrate(hits, LOWER)
        for hit in hits:
            assert hit.adjusted_mass_error_ppm == pytest.approx(hit.mass_error_ppm - 4.0)

    def test_zero_offset_is_identity(self):
        hits = crafted_sample()
        apply_calibration(hits, 0.0)
        for hit in hits:
            assert hit.adjusted_mass_error_ppm == hit.mass_error_ppm

    def test_recalibration_does_not_shift_again(self):
        hits = crafted_sample()
        calibrate(hits, LOWER)
        first = [h.adjusted_mass_error_ppm for h in hits]
        calibrate(hits, LOWER)
        assert [h.adjusted_mass_error_ppm for h in hits] == first
