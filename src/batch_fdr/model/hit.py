"""
Record model - identification hits before and after precursor diagnostics.

A ``PeptideHit`` is created from one identification record plus the
precursor metadata looked up for its scan. It is mutated exactly twice:
once by mass calibration (``adjusted_mass_error_ppm``) and once by the
q-value engine (``q_value``). Every later collection (global pool,
accepted lists, unique winner maps) holds references to the same objects.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from batch_fdr.config import DECOY_MARKERS, PHOSPHO_MARKER


@dataclass(frozen=True)
class PrecursorMetadata:
    """Precursor diagnostics of one MS/MS scan."""

    isolation_mz: float
    isolation_mass: float
    theoretical_neutral_mass: float
    experimental_neutral_mass: float
    mass_error_ppm: float


@dataclass(frozen=True)
class IdentificationRecord:
    """One parsed row of an identification file."""

    scan_number: int
    sequence: str
    score: float
    is_decoy: bool
    modifications: str
    charge: int
    theoretical_mass: float
    fields: Tuple[str, ...] = ()

    @staticmethod
    def is_decoy_defline(defline: str) -> bool:
        return any(marker in defline for marker in DECOY_MARKERS)


@dataclass(eq=False)
class PeptideHit:
    """A peptide-spectrum match enriched with precursor mass diagnostics."""

    scan_number: int
    sequence: str
    score: float
    is_decoy: bool
    modifications: str
    charge: int
    precursor: PrecursorMetadata
    fields: Tuple[str, ...] = ()
    adjusted_mass_error_ppm: float = math.nan
    q_value: float = math.nan

    @classmethod
    def from_record(cls, record: IdentificationRecord, precursor: PrecursorMetadata) -> "PeptideHit":
        return cls(
            scan_number=record.scan_number,
            sequence=record.sequence,
            score=record.score,
            is_decoy=record.is_decoy,
            modifications=record.modifications,
            charge=record.charge,
            precursor=precursor,
            fields=record.fields,
        )

    @property
    def mass_error_ppm(self) -> float:
        """Raw precursor mass error (ppm) before calibration."""
        return self.precursor.mass_error_ppm

    @property
    def is_phospho(self) -> bool:
        return PHOSPHO_MARKER in self.modifications

    def extended_fields(self) -> List:
        """Original record fields followed by the diagnostic columns."""
        p = self.precursor
        return list(self.fields) + [
            p.isolation_mz,
            p.isolation_mass,
            p.theoretical_neutral_mass,
            p.experimental_neutral_mass,
            p.mass_error_ppm,
            self.adjusted_mass_error_ppm,
            self.q_value,
        ]


@dataclass(frozen=True)
class ScorePolarity:
    """
    Direction in which scores improve.

    E-values are better when lower; most other search engine scores are
    better when higher. All score comparisons in the engine go through this
    class so that the polarity is decided in exactly one place.
    """

    higher_is_better: bool = False

    def is_better(self, score: float, other: float) -> bool:
        """True when ``score`` is strictly better than ``other``."""
        if self.higher_is_better:
            return score > other
        return score < other

    def is_at_least_as_good(self, score: float, other: float) -> bool:
        if self.higher_is_better:
            return score >= other
        return score <= other

    def sort_key(self, score: float) -> float:
        """Key that sorts best scores first in ascending order."""
        return -score if self.higher_is_better else score

    @property
    def best_sentinel(self) -> float:
        """A threshold no real score can reach."""
        return math.inf if self.higher_is_better else -math.inf


@dataclass
class SequenceWinners:
    """Best hit per sequence, targets and decoys kept apart."""

    targets: Dict[str, PeptideHit] = field(default_factory=dict)
    decoys: Dict[str, PeptideHit] = field(default_factory=dict)

    def sorted_targets(self) -> List[PeptideHit]:
        return [self.targets[seq] for seq in sorted(self.targets)]

    def sorted_decoys(self) -> List[PeptideHit]:
        return [self.decoys[seq] for seq in sorted(self.decoys)]


def fdr_percent(decoys: int, targets: int) -> float:
    """
    Estimated FDR (%) = decoys / targets * 100.

    Returns NaN when there are no targets. NaN compares false against any
    bound, so a degenerate tier can never be selected as a threshold.
    """
    if targets == 0:
        return math.nan
    return decoys / targets * 100.0
