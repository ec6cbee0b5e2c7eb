"""Record model: identification records, peptide hits and score polarity."""

from batch_fdr.model.hit import (
    IdentificationRecord,
    PeptideHit,
    PrecursorMetadata,
    ScorePolarity,
    SequenceWinners,
    fdr_percent,
)

__all__ = [
    "IdentificationRecord",
    "PeptideHit",
    "PrecursorMetadata",
    "ScorePolarity",
    "SequenceWinners",
    "fdr_percent",
]
