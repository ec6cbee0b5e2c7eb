"""
Tests for the global threshold search.
"""

import math
import random

import pytest

from batch_fdr.fdr.qvalue import compute_q_values
from batch_fdr.fdr.threshold_search import (
    GlobalThresholdSearch,
    ThresholdResult,
    tolerance_grid,
)
from batch_fdr.model.hit import ScorePolarity

from conftest import make_hit


LOWER = ScorePolarity(higher_is_better=False)
HIGHER = ScorePolarity(higher_is_better=True)


def calibrated(hits):
    for hit in hits:
        hit.adjusted_mass_error_ppm = hit.mass_error_ppm
    return hits


class TestToleranceGrid:
    """Tests for the tolerance grid."""

    def test_includes_maximum(self):
        grid = tolerance_grid(10.0, 0.5)
        assert len(grid) == 20
        assert grid[0] == 0.5
        assert grid[-1] == 10.0

    def test_multiples_do_not_drift(self):
        grid = tolerance_grid(3.0, 0.1)
        assert len(grid) == 30
        assert grid[-1] == pytest.approx(3.0)
        assert grid[6] == pytest.approx(0.7)

    def test_increment_larger_than_maximum(self):
        assert len(tolerance_grid(1.0, 2.0)) == 0

    def test_non_positive_increment_rejected(self):
        with pytest.raises(ValueError):
            tolerance_grid(10.0, 0.0)


class TestThresholdResult:
    """Tests for the acceptance predicate."""

    def test_sentinel_accepts_nothing(self):
        result = ThresholdResult(score_threshold=LOWER.best_sentinel, polarity=LOWER)
        hit = make_hit(1, q_value=0.0, adjusted_mass_error_ppm=0.0, score=1e-10)

        assert not result.found
        assert not result.accepts(hit)

    def test_equal_q_value_needs_score_at_least_as_good(self):
        result = ThresholdResult(
            score_threshold=0.01, polarity=LOWER, q_value_threshold=1.0, mass_tolerance_ppm=5.0
        )
        assert result.accepts(make_hit(1, score=0.01, q_value=1.0, adjusted_mass_error_ppm=5.0))
        assert result.accepts(make_hit(2, score=0.5, q_value=0.5, adjusted_mass_error_ppm=-1.0))
        assert not result.accepts(make_hit(3, score=0.02, q_value=1.0, adjusted_mass_error_ppm=0.0))
        assert not result.accepts(make_hit(4, score=0.001, q_value=0.5, adjusted_mass_error_ppm=5.1))

    def test_nan_q_value_never_accepted(self):
        result = ThresholdResult(
            score_threshold=0.01, polarity=LOWER, q_value_threshold=1.0, mass_tolerance_ppm=5.0
        )
        assert not result.accepts(make_hit(1, score=0.001, adjusted_mass_error_ppm=0.0))


class TestGlobalThresholdSearch:
    """Tests for GlobalThresholdSearch."""

    def test_end_to_end_target_and_decoy(self):
        """Target at 10 and decoy at 9, higher is better, 50% bound."""
        target = make_hit(1, "T", 10.0, mass_error_ppm=1.0)
        decoy = make_hit(2, "D", 9.0, is_decoy=True, mass_error_ppm=1.0)
        pool = calibrated([target, decoy])
        compute_q_values(pool, HIGHER)

        search = GlobalThresholdSearch(HIGHER, max_fdr=50.0, max_tolerance_ppm=10.0, increment_ppm=0.5)
        result = search.search(pool)

        assert result.found
        assert result.q_value_threshold == 0.0
        assert result.score_threshold == 10.0
        assert result.mass_tolerance_ppm == 1.0
        assert result.n_targets == 1
        assert result.accepts(target)
        assert not result.accepts(decoy)

    def test_only_decoys_returns_sentinel(self):
        pool = calibrated([make_hit(i, f"D{i}", 0.01 * i, is_decoy=True) for i in range(1, 6)])
        compute_q_values(pool, LOWER)

        result = GlobalThresholdSearch(LOWER, 1.0, 10.0, 0.5).search(pool)

        assert not result.found
        assert result.q_value_threshold == -math.inf
        assert result.score_threshold == -math.inf
        assert math.isnan(result.mass_tolerance_ppm)
        assert not any(result.accepts(h) for h in pool)

    def test_tolerance_excludes_far_decoy(self):
        """A decoy with a large mass error is excluded by a tighter tolerance."""
        hits = [make_hit(i, f"T{i}", 0.001 * i, mass_error_ppm=0.3) for i in range(1, 10)]
        hits.append(make_hit(10, "D", 0.0005, is_decoy=True, mass_error_ppm=8.0))
        pool = calibrated(hits)
        compute_q_values(pool, LOWER)

        result = GlobalThresholdSearch(LOWER, 1.0, 10.0, 0.5).search(pool)

        assert result.n_targets == 9
        assert result.n_decoys == 0
        assert result.mass_tolerance_ppm == 0.5

    def test_equal_targets_prefer_lower_fdr(self):
        hits = [make_hit(i, f"T{i}", 0.001 * i, mass_error_ppm=0.2) for i in range(1, 5)]
        hits.append(make_hit(5, "D", 0.0025, is_decoy=True, mass_error_ppm=3.0))
        pool = calibrated(hits)
        compute_q_values(pool, LOWER)

        result = GlobalThresholdSearch(LOWER, 30.0, 5.0, 1.0).search(pool)

        assert result.n_targets == 4
        assert result.fdr == 0.0
        assert result.mass_tolerance_ppm == 1.0

    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    def test_shuffled_pool_gives_identical_triple(self, seed):
        rng = random.Random(seed)
        hits = [
            make_hit(
                i,
                f"S{i}",
                score=round(rng.uniform(0, 1), 2),
                is_decoy=rng.random() < 0.2,
                mass_error_ppm=round(rng.uniform(-8, 8), 1),
            )
            for i in range(200)
        ]
        calibrated(hits)
        compute_q_values(hits, LOWER)
        search = GlobalThresholdSearch(LOWER, 5.0, 10.0, 0.5)

        reference = search.search(hits)
        shuffled = list(hits)
        for _ in range(3):
            rng.shuffle(shuffled)
            result = search.search(shuffled)
            assert result.q_value_threshold == reference.q_value_threshold
            assert result.score_threshold == reference.score_threshold
            assert result.mass_tolerance_ppm == reference.mass_tolerance_ppm
            assert result.n_targets == reference.n_targets

    def test_decoys_of_target_free_file_count_toward_pool(self):
        """A file with only decoys has no q-values, but its decoys still count."""
        with_targets = calibrated([make_hit(i, f"T{i}", 0.01 * (i + 1)) for i in range(20)])
        decoys_only = calibrated([
            make_hit(i, f"D{i}", 0.0001 * (i + 1), is_decoy=True) for i in range(10)
        ])
        compute_q_values(with_targets, LOWER)
        compute_q_values(decoys_only, LOWER)
        assert all(math.isnan(h.q_value) for h in decoys_only)

        result = GlobalThresholdSearch(LOWER, 1.0, 10.0, 0.5).search(with_targets + decoys_only)

        assert not result.found
        assert result.n_targets == 0
        assert not any(result.accepts(h) for h in with_targets + decoys_only)

    def test_decoys_of_target_free_file_raise_pooled_fdr(self):
        with_targets = calibrated([make_hit(i, f"T{i}", 0.01 * (i + 1)) for i in range(20)])
        decoys_only = calibrated([make_hit(0, "D0", 0.0001, is_decoy=True)])
        compute_q_values(with_targets, LOWER)
        compute_q_values(decoys_only, LOWER)

        result = GlobalThresholdSearch(LOWER, 10.0, 10.0, 0.5).search(with_targets + decoys_only)

        assert result.found
        assert result.n_targets == 20
        assert result.n_decoys == 1
        assert result.fdr == pytest.approx(5.0)
        assert not result.accepts(decoys_only[0])
