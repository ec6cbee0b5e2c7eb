"""
Aggregator - per-file and batch-wide counts for reporting.

Purely additive: every number here is derived from decisions already taken
by the scan reducer, calibration, threshold search and uniqueness reducer.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from batch_fdr.config import SUMMARY_FILE_KEY, SUMMARY_OVERALL_KEY
from batch_fdr.fdr.analysis import FileAnalysis
from batch_fdr.fdr.threshold_search import ThresholdResult
from batch_fdr.model.hit import SequenceWinners, fdr_percent


_SUMMARY_COLUMNS = [
    "CSV Filepath",
    "Raw Filepath",
    "Preliminary E-Value Score Threshold",
    "Preliminary Target Peptides",
    "Preliminary Decoy Peptides",
    "Preliminary FDR (%)",
    "Systematic (Median) Precursor Mass Error (ppm)",
    "Scans",
    "Phosphopeptide Scans",
    "Q-Value Threshold (%)",
    "E-Value Score Threshold",
    "Maximum Precursor Mass Error (ppm)",
    "Target Peptides",
    "Decoy Peptides",
    "Target Phosphopeptides",
    "Decoy Phosphopeptides",
    "Unique Target Peptides",
    "Unique Decoy Peptides",
    "Unique Target Phosphopeptides",
    "Unique Decoy Phosphopeptides",
    "FDR (%)",
]


def _count_phospho(hits) -> int:
    return sum(1 for hit in hits if hit.is_phospho)


@dataclass
class FileSummary:
    """Counts and thresholds of one identification file."""

    source: str
    spectral_source: str
    preliminary_score_threshold: float
    preliminary_targets: int
    preliminary_decoys: int
    preliminary_fdr: float
    systematic_error_ppm: float
    scans: int
    phospho_scans: int
    targets: int = 0
    decoys: int = 0
    phospho_targets: int = 0
    phospho_decoys: int = 0
    unique_targets: int = 0
    unique_decoys: int = 0
    unique_phospho_targets: int = 0
    unique_phospho_decoys: int = 0
    fdr: float = math.nan


@dataclass
class BatchSummary:
    """Totals over all files ("SUM") and batch-wide unique counts ("OVERALL")."""

    thresholds: ThresholdResult
    unique: bool
    files: List[FileSummary] = field(default_factory=list)
    scans: int = 0
    phospho_scans: int = 0
    targets: int = 0
    decoys: int = 0
    phospho_targets: int = 0
    phospho_decoys: int = 0
    unique_targets: int = 0
    unique_decoys: int = 0
    unique_phospho_targets: int = 0
    unique_phospho_decoys: int = 0
    overall_unique_targets: int = 0
    overall_unique_decoys: int = 0
    overall_unique_phospho_targets: int = 0
    overall_unique_phospho_decoys: int = 0

    @property
    def fdr(self) -> float:
        """Redundant FDR summed over files (redundant counting mode)."""
        return fdr_percent(self.decoys, self.targets)

    @property
    def overall_unique_fdr(self) -> float:
        """FDR over the batch-wide unique winners (unique counting mode)."""
        return fdr_percent(self.overall_unique_decoys, self.overall_unique_targets)

    def get(self, source: str) -> Optional[FileSummary]:
        for summary in self.files:
            if summary.source == source:
                return summary
        return None


class Aggregator:
    """Accumulates FileSummary records and batch totals."""

    def __init__(self, thresholds: ThresholdResult, unique: bool = False):
        self.summary = BatchSummary(thresholds=thresholds, unique=unique)

    def add_file(self, analysis: FileAnalysis) -> FileSummary:
        calibration = analysis.calibration
        reduction = analysis.reduction
        unique_targets = analysis.unique.targets.values()
        unique_decoys = analysis.unique.decoys.values()

        file_summary = FileSummary(
            source=str(analysis.source),
            spectral_source=str(analysis.spectral_source),
            preliminary_score_threshold=calibration.score_threshold,
            preliminary_targets=calibration.n_targets,
            preliminary_decoys=calibration.n_decoys,
            preliminary_fdr=calibration.fdr,
            systematic_error_ppm=calibration.systematic_error_ppm,
            scans=reduction.n_scans,
            phospho_scans=reduction.n_phospho_scans,
            targets=len(analysis.accepted_targets),
            decoys=len(analysis.accepted_decoys),
            phospho_targets=_count_phospho(analysis.accepted_targets),
            phospho_decoys=_count_phospho(analysis.accepted_decoys),
            unique_targets=len(analysis.unique.targets),
            unique_decoys=len(analysis.unique.decoys),
            unique_phospho_targets=_count_phospho(unique_targets),
            unique_phospho_decoys=_count_phospho(unique_decoys),
        )
        if self.summary.unique:
            file_summary.fdr = fdr_percent(file_summary.unique_decoys, file_summary.unique_targets)
        else:
            file_summary.fdr = fdr_percent(file_summary.decoys, file_summary.targets)

        s = self.summary
        s.files.append(file_summary)
        s.scans += file_summary.scans
        s.phospho_scans += file_summary.phospho_scans
        s.targets += file_summary.targets
        s.decoys += file_summary.decoys
        s.phospho_targets += file_summary.phospho_targets
        s.phospho_decoys += file_summary.phospho_decoys
        s.unique_targets += file_summary.unique_targets
        s.unique_decoys += file_summary.unique_decoys
        s.unique_phospho_targets += file_summary.unique_phospho_targets
        s.unique_phospho_decoys += file_summary.unique_phospho_decoys
        return file_summary

    def add_overall(self, overall: SequenceWinners) -> None:
        s = self.summary
        s.overall_unique_targets = len(overall.targets)
        s.overall_unique_decoys = len(overall.decoys)
        s.overall_unique_phospho_targets = _count_phospho(overall.targets.values())
        s.overall_unique_phospho_decoys = _count_phospho(overall.decoys.values())

    def summary_rows(self, phospho: bool = False) -> List[Dict[str, Any]]:
        """
        Rows of ``summary.csv``: one per file, then ``SUM`` and ``OVERALL``.

        Columns that do not apply to a row hold ``"n/a"``.
        """
        s = self.summary
        t = s.thresholds
        na = "n/a"
        rows = []

        for f in s.files:
            row = {
                "CSV Filepath": f.source,
                "Raw Filepath": f.spectral_source,
                "Preliminary E-Value Score Threshold": f.preliminary_score_threshold,
                "Preliminary Target Peptides": f.preliminary_targets,
                "Preliminary Decoy Peptides": f.preliminary_decoys,
                "Preliminary FDR (%)": f.preliminary_fdr,
                "Systematic (Median) Precursor Mass Error (ppm)": f.systematic_error_ppm,
                "Scans": f.scans,
                "Phosphopeptide Scans": f.phospho_scans,
                "Q-Value Threshold (%)": t.q_value_threshold,
                "E-Value Score Threshold": t.score_threshold,
                "Maximum Precursor Mass Error (ppm)": t.mass_tolerance_ppm,
                "Target Peptides": f.targets,
                "Decoy Peptides": f.decoys,
                "Target Phosphopeptides": f.phospho_targets,
                "Decoy Phosphopeptides": f.phospho_decoys,
                "Unique Target Peptides": f.unique_targets,
                "Unique Decoy Peptides": f.unique_decoys,
                "Unique Target Phosphopeptides": f.unique_phospho_targets,
                "Unique Decoy Phosphopeptides": f.unique_phospho_decoys,
                "FDR (%)": f.fdr,
            }
            rows.append(row)

        preliminary_na = {
            "Raw Filepath": na,
            "Preliminary E-Value Score Threshold": na,
            "Preliminary Target Peptides": na,
            "Preliminary Decoy Peptides": na,
            "Preliminary FDR (%)": na,
            "Systematic (Median) Precursor Mass Error (ppm)": na,
        }
        thresholds = {
            "Q-Value Threshold (%)": t.q_value_threshold,
            "E-Value Score Threshold": t.score_threshold,
            "Maximum Precursor Mass Error (ppm)": t.mass_tolerance_ppm,
        }
        rows.append({
            "CSV Filepath": SUMMARY_FILE_KEY,
            **preliminary_na,
            "Scans": s.scans,
            "Phosphopeptide Scans": s.phospho_scans,
            **thresholds,
            "Target Peptides": s.targets,
            "Decoy Peptides": s.decoys,
            "Target Phosphopeptides": s.phospho_targets,
            "Decoy Phosphopeptides": s.phospho_decoys,
            "Unique Target Peptides": s.unique_targets,
            "Unique Decoy Peptides": s.unique_decoys,
            "Unique Target Phosphopeptides": s.unique_phospho_targets,
            "Unique Decoy Phosphopeptides": s.unique_phospho_decoys,
            "FDR (%)": na if s.unique else s.fdr,
        })
        rows.append({
            "CSV Filepath": SUMMARY_OVERALL_KEY,
            **preliminary_na,
            "Scans": na,
            "Phosphopeptide Scans": na,
            **thresholds,
            "Target Peptides": na,
            "Decoy Peptides": na,
            "Target Phosphopeptides": na,
            "Decoy Phosphopeptides": na,
            "Unique Target Peptides": s.overall_unique_targets,
            "Unique Decoy Peptides": s.overall_unique_decoys,
            "Unique Target Phosphopeptides": s.overall_unique_phospho_targets,
            "Unique Decoy Phosphopeptides": s.overall_unique_phospho_decoys,
            "FDR (%)": s.overall_unique_fdr if s.unique else na,
        })

        columns = self.summary_columns(phospho)
        return [{key: row[key] for key in columns} for row in rows]

    def summary_columns(self, phospho: bool = False) -> List[str]:
        """
        Column order of ``summary.csv``.

        The FDR column follows the redundant counts in redundant mode and
        the unique counts in unique mode. Phosphopeptide columns are only
        present when requested.
        """
        columns = list(_SUMMARY_COLUMNS)
        if not self.summary.unique:
            columns.remove("FDR (%)")
            columns.insert(columns.index("Decoy Phosphopeptides") + 1, "FDR (%)")
        if not phospho:
            columns = [c for c in columns if "Phospho" not in c]
        return columns
