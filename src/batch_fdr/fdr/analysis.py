"""
FileAnalysis - state of one identification file through the pipeline.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from batch_fdr.fdr.calibration import CalibrationResult, calibrate
from batch_fdr.fdr.qvalue import compute_q_values
from batch_fdr.fdr.scan_reducer import ScanReduction
from batch_fdr.fdr.threshold_search import ThresholdResult
from batch_fdr.fdr.uniqueness import reduce_unique
from batch_fdr.model.hit import PeptideHit, ScorePolarity, SequenceWinners

logger = logging.getLogger(__name__)


@dataclass
class FileAnalysis:
    """
    One identification file: its scan-reduced hits, calibration and, once
    global thresholds are known, its accepted and unique hits.

    Several analyses may share a spectral source; each is calibrated on
    its own hits only.
    """

    source: Path
    spectral_source: Path
    reduction: ScanReduction
    header: List[str] = field(default_factory=list)
    calibration: Optional[CalibrationResult] = None
    accepted_targets: List[PeptideHit] = field(default_factory=list)
    accepted_decoys: List[PeptideHit] = field(default_factory=list)
    unique: SequenceWinners = field(default_factory=SequenceWinners)

    @property
    def name(self) -> str:
        return self.source.stem

    @property
    def hits(self) -> List[PeptideHit]:
        """Retained hits in scan order."""
        return self.reduction.ordered_hits()

    def prepare(self, polarity: ScorePolarity, unique: bool = False) -> None:
        """Calibrate precursor mass errors, then compute q-values."""
        hits = self.hits
        self.calibration = calibrate(hits, polarity)
        compute_q_values(hits, polarity, unique=unique)

    def apply_thresholds(self, thresholds: ThresholdResult, polarity: ScorePolarity) -> None:
        """Split accepted hits into targets and decoys and reduce them per sequence."""
        accepted = [hit for hit in self.hits if thresholds.accepts(hit)]
        self.accepted_targets = [hit for hit in accepted if not hit.is_decoy]
        self.accepted_decoys = [hit for hit in accepted if hit.is_decoy]
        self.unique = reduce_unique(accepted, polarity)
        logger.info(
            f"{self.name}: {len(self.accepted_targets)} targets, "
            f"{len(self.accepted_decoys)} decoys accepted; "
            f"{len(self.unique.targets)} unique targets, {len(self.unique.decoys)} unique decoys"
        )
