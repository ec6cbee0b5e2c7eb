"""
ReportWriter - Write hit tables and the batch summary as CSV files.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

import pandas as pd

from batch_fdr.config import EXTENDED_COLUMNS
from batch_fdr.fdr.analysis import FileAnalysis
from batch_fdr.model.hit import PeptideHit, SequenceWinners
from batch_fdr.utils.output_layout import OutputLayout

logger = logging.getLogger(__name__)


def _phospho_only(hits: Iterable[PeptideHit]) -> List[PeptideHit]:
    return [hit for hit in hits if hit.is_phospho]


def hits_to_dataframe(hits: Sequence[PeptideHit], header: Sequence[str]) -> pd.DataFrame:
    """
    Tabulate hits: the original record fields followed by the precursor
    diagnostic columns.

    Args:
        hits: Hits in output order
        header: Column names of the original identification file. When
            empty (e.g. the file had no rows), columns are numbered.

    Returns:
        DataFrame with one row per hit
    """
    n_fields = len(header) if header else max((len(h.fields) for h in hits), default=0)
    columns = list(header) if header else [f"Column {i + 1}" for i in range(n_fields)]
    rows = []
    for hit in hits:
        fields = list(hit.fields[:n_fields]) + [""] * (n_fields - len(hit.fields))
        rows.append(fields + hit.extended_fields()[len(hit.fields):])
    return pd.DataFrame(rows, columns=columns + EXTENDED_COLUMNS)


class ReportWriter:
    """
    Writes the CSV reports of an optimization run into an OutputLayout.

    Every table written is returned by path so that log generation can
    reference it.
    """

    def __init__(self, layout: OutputLayout, phospho: bool = False):
        """
        Initialize report writer.

        Args:
            layout: Output folder layout (already created)
            phospho: Also write the phosphopeptide subsets
        """
        self.layout = layout
        self.phospho = phospho

    def write_hits(self, path: Path, hits: Sequence[PeptideHit], header: Sequence[str]) -> Path:
        df = hits_to_dataframe(hits, header)
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index=False, na_rep="NaN")
        logger.debug(f"Wrote {len(df)} rows to {path}")
        return path

    def _write_with_phospho(
        self, paths: Dict[str, Path], key: str, path_for, hits: Sequence[PeptideHit], header
    ) -> None:
        paths[key] = self.write_hits(path_for(False), hits, header)
        if self.phospho:
            paths[f"{key}_phospho"] = self.write_hits(path_for(True), _phospho_only(hits), header)

    def write_scans(self, analysis: FileAnalysis) -> Dict[str, Path]:
        """Write the scan-reduced hits of one file (available before the search)."""
        paths: Dict[str, Path] = {}
        stem = analysis.name
        self._write_with_phospho(
            paths, "scans", lambda p: self.layout.scans_file(stem, p), analysis.hits, analysis.header
        )
        return paths

    def write_file_reports(self, analysis: FileAnalysis) -> Dict[str, Path]:
        """
        Write accepted and unique hit tables of one file.

        Returns:
            Mapping of report key (``target``, ``decoy_unique_phospho``, ...) to path
        """
        paths: Dict[str, Path] = {}
        stem = analysis.name
        header = analysis.header
        layout = self.layout

        self._write_with_phospho(
            paths, "target", lambda p: layout.target_decoy_file(stem, False, p),
            analysis.accepted_targets, header,
        )
        self._write_with_phospho(
            paths, "decoy", lambda p: layout.target_decoy_file(stem, True, p),
            analysis.accepted_decoys, header,
        )
        self._write_with_phospho(
            paths, "target_unique", lambda p: layout.unique_file(stem, False, p),
            analysis.unique.sorted_targets(), header,
        )
        self._write_with_phospho(
            paths, "decoy_unique", lambda p: layout.unique_file(stem, True, p),
            analysis.unique.sorted_decoys(), header,
        )
        return paths

    def write_overall_reports(
        self, analyses: Sequence[FileAnalysis], overall: SequenceWinners
    ) -> Dict[str, Path]:
        """
        Write the batch-wide tables.

        Per-file tables are concatenated in input order; the
        ``*_unique_unique`` tables hold the batch-wide sequence winners.
        The header of the first file is used for every table.
        """
        header = next((a.header for a in analyses if a.header), [])
        paths: Dict[str, Path] = {}
        layout = self.layout

        def concat(attr) -> List[PeptideHit]:
            return [hit for analysis in analyses for hit in attr(analysis)]

        tables = [
            ("scans", concat(lambda a: a.hits)),
            ("target", concat(lambda a: a.accepted_targets)),
            ("decoy", concat(lambda a: a.accepted_decoys)),
            ("target_unique", concat(lambda a: a.unique.sorted_targets())),
            ("decoy_unique", concat(lambda a: a.unique.sorted_decoys())),
            ("target_unique_unique", overall.sorted_targets()),
            ("decoy_unique_unique", overall.sorted_decoys()),
        ]
        for name, hits in tables:
            self._write_with_phospho(
                paths, name, lambda p, name=name: layout.overall_file(name, p), hits, header
            )
        return paths

    def write_summary(self, rows: List[Dict[str, Any]]) -> Path:
        """Write ``summary.csv`` from Aggregator rows."""
        path = self.layout.summary_file
        pd.DataFrame(rows).to_csv(path, index=False, na_rep="NaN")
        logger.info(f"Summary written to: {path}")
        return path
