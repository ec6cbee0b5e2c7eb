"""
LogGenerator - Generate the plain text logs of an optimization run.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Sequence

from batch_fdr.config import OptimizerSettings
from batch_fdr.fdr.aggregator import BatchSummary, FileSummary
from batch_fdr.fdr.analysis import FileAnalysis
from batch_fdr.fdr.threshold_search import ThresholdResult

logger = logging.getLogger(__name__)


class LogGenerator:
    """
    Generates the per-file logs and the batch log:
    - Run parameters
    - Calibration (preliminary threshold and systematic mass error)
    - Global thresholds
    - Counts after FDR optimization, next to the files that hold them
    """

    SEPARATOR = "=" * 60

    def __init__(self, settings: OptimizerSettings):
        self.settings = settings
        self.report_lines: List[str] = []

    def _add_line(self, line: str = "") -> None:
        """Add a line to the report."""
        self.report_lines.append(line)

    def _add_count(self, path: Path, count: int, what: str) -> None:
        self._add_line(str(path))
        self._add_line(f"{count} {what} after FDR optimization")

    def _add_header(self) -> None:
        self._add_line(self.SEPARATOR)
        for line in self.settings.describe():
            self._add_line(line)
        self._add_line(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        self._add_line(self.SEPARATOR)
        self._add_line()

    def _add_thresholds(self, thresholds: ThresholdResult) -> None:
        self._add_line(f"Q-Value Threshold (%): {thresholds.q_value_threshold}")
        self._add_line(f"E-Value Score Threshold: {thresholds.score_threshold}")
        self._add_line(f"Maximum Precursor Mass Error (ppm): ±{thresholds.mass_tolerance_ppm}")
        if not thresholds.found:
            self._add_line(
                f"WARNING: no threshold satisfies the {self.settings.max_fdr_percent}% FDR bound; "
                f"no peptides were accepted"
            )
        self._add_line()

    def _write(self, output_path: Path) -> str:
        content = "\n".join(self.report_lines) + "\n"
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(content)
        logger.debug(f"Log written to: {output_path}")
        return content

    def generate_file_log(
        self,
        analysis: FileAnalysis,
        summary: FileSummary,
        thresholds: ThresholdResult,
        paths: Dict[str, Path],
        output_path: Path,
    ) -> str:
        """
        Generate the log of one identification file.

        Args:
            analysis: Finished analysis of the file
            summary: Its counts from the Aggregator
            thresholds: Global thresholds applied
            paths: Report paths from ReportWriter, keyed by report name
            output_path: Log file to write

        Returns:
            Log content as string
        """
        self.report_lines = []
        phospho = self.settings.phosphopeptide_outputs

        self._add_header()
        self._add_line(str(analysis.spectral_source))
        self._add_line()
        self._add_line(str(analysis.source))
        self._add_line()

        self._add_line(f"Preliminary E-Value Score Threshold: {summary.preliminary_score_threshold}")
        self._add_line(f"Preliminary Target Peptides: {summary.preliminary_targets}")
        self._add_line(f"Preliminary Decoy Peptides: {summary.preliminary_decoys}")
        self._add_line(f"Preliminary FDR (%): {summary.preliminary_fdr}")
        self._add_line(f"Systematic (Median) Precursor Mass Error (ppm): {summary.systematic_error_ppm}")
        self._add_line()

        self._add_line(str(paths["scans"]))
        self._add_line(f"{summary.scans} MS/MS scans resulted in at least one peptide hit")
        if phospho:
            self._add_line(str(paths["scans_phospho"]))
            self._add_line(
                f"{summary.phospho_scans} MS/MS scans resulted in at least one phosphopeptide hit"
            )
        self._add_line()

        self._add_thresholds(thresholds)

        self._add_count(paths["target"], summary.targets, "target peptides")
        self._add_count(paths["decoy"], summary.decoys, "decoy peptides")
        if phospho:
            self._add_count(paths["target_phospho"], summary.phospho_targets, "target phosphopeptides")
            self._add_count(paths["decoy_phospho"], summary.phospho_decoys, "decoy phosphopeptides")
        self._add_line()

        if not self.settings.unique:
            self._add_line(f"FDR (%): {summary.fdr}")
            self._add_line()

        self._add_count(
            paths["target_unique"], summary.unique_targets, "unique target peptide sequences"
        )
        self._add_count(
            paths["decoy_unique"], summary.unique_decoys, "unique decoy peptide sequences"
        )
        if phospho:
            self._add_count(
                paths["target_unique_phospho"], summary.unique_phospho_targets,
                "unique target phosphopeptide sequences",
            )
            self._add_count(
                paths["decoy_unique_phospho"], summary.unique_phospho_decoys,
                "unique decoy phosphopeptide sequences",
            )

        if self.settings.unique:
            self._add_line()
            self._add_line(f"FDR (%): {summary.fdr}")

        return self._write(output_path)

    def generate_overall_log(
        self,
        analyses: Sequence[FileAnalysis],
        summary: BatchSummary,
        paths: Dict[str, Path],
        output_path: Path,
    ) -> str:
        """
        Generate the batch log: inputs, global thresholds and batch counts.

        Returns:
            Log content as string
        """
        self.report_lines = []
        phospho = self.settings.phosphopeptide_outputs

        self._add_header()
        for analysis in analyses:
            self._add_line(str(analysis.spectral_source))
            self._add_line(str(analysis.source))
            self._add_line()

        self._add_line(str(paths["scans"]))
        self._add_line(f"{summary.scans} MS/MS scans resulted in at least one peptide hit")
        if phospho:
            self._add_line(str(paths["scans_phospho"]))
            self._add_line(
                f"{summary.phospho_scans} MS/MS scans resulted in at least one phosphopeptide hit"
            )
        self._add_line()

        self._add_thresholds(summary.thresholds)

        self._add_count(paths["target"], summary.targets, "target peptides")
        self._add_count(paths["decoy"], summary.decoys, "decoy peptides")
        if phospho:
            self._add_count(paths["target_phospho"], summary.phospho_targets, "target phosphopeptides")
            self._add_count(paths["decoy_phospho"], summary.phospho_decoys, "decoy phosphopeptides")
        self._add_line()

        if not self.settings.unique:
            self._add_line(f"FDR (%): {summary.fdr}")
            self._add_line()

        self._add_count(
            paths["target_unique"], summary.unique_targets, "target unique peptide sequences"
        )
        self._add_count(
            paths["decoy_unique"], summary.unique_decoys, "decoy unique peptide sequences"
        )
        if phospho:
            self._add_count(
                paths["target_unique_phospho"], summary.unique_phospho_targets,
                "target unique phosphopeptide sequences",
            )
            self._add_count(
                paths["decoy_unique_phospho"], summary.unique_phospho_decoys,
                "decoy unique phosphopeptide sequences",
            )
        self._add_line()

        self._add_count(
            paths["target_unique_unique"], summary.overall_unique_targets,
            "target unique unique peptide sequences",
        )
        self._add_count(
            paths["decoy_unique_unique"], summary.overall_unique_decoys,
            "decoy unique unique peptide sequences",
        )
        if phospho:
            self._add_count(
                paths["target_unique_unique_phospho"], summary.overall_unique_phospho_targets,
                "target unique unique phosphopeptide sequences",
            )
            self._add_count(
                paths["decoy_unique_unique_phospho"], summary.overall_unique_phospho_decoys,
                "decoy unique unique phosphopeptide sequences",
            )

        if self.settings.unique:
            self._add_line()
            self._add_line(f"FDR (%): {summary.overall_unique_fdr}")

        content = self._write(output_path)
        logger.info(f"Batch log written to: {output_path}")
        self._log_console_summary(summary)
        return content

    def _log_console_summary(self, summary: BatchSummary) -> None:
        """Log a short summary to the console."""
        fdr = summary.overall_unique_fdr if self.settings.unique else summary.fdr
        logger.info("")
        logger.info(self.SEPARATOR)
        logger.info("BATCH FDR OPTIMIZATION SUMMARY")
        logger.info(self.SEPARATOR)
        logger.info(f"Files: {len(summary.files)}, scans: {summary.scans}")
        logger.info(f"Target peptides: {summary.targets}, decoy peptides: {summary.decoys}")
        logger.info(
            f"Unique target sequences: {summary.overall_unique_targets}, "
            f"unique decoy sequences: {summary.overall_unique_decoys}"
        )
        logger.info(f"FDR (%): {fdr}")
        logger.info(self.SEPARATOR)
