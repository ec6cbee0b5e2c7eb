"""Output directory layout for optimization reports."""

import logging
from pathlib import Path
from typing import Dict

from batch_fdr.config import OUTPUT_FOLDERS, OVERALL_LOG_FILENAME, SUMMARY_FILENAME

logger = logging.getLogger(__name__)


class OutputLayout:
    """
    Manages the output folder and the path of every report file.

    Layout::

        <output>/
            log/<stem>_log.txt
            scans/<stem>_scans.csv
            target-decoy/<stem>_target.csv, <stem>_decoy.csv
            unique/<stem>_target_unique.csv, <stem>_decoy_unique.csv
            <folder>/phospho/...        (phosphopeptide subsets)
            scans.csv, target.csv, ...  (batch-wide reports)
            summary.csv
            Batch_FDR_Optimizer_log.txt

    Existing files are overwritten; nothing is ever deleted.
    """

    def __init__(self, output_dir: Path, phospho: bool = False):
        """
        Initialize output layout.

        Args:
            output_dir: Root output folder, created when missing
            phospho: Also create the phosphopeptide subfolders
        """
        self.output_dir = Path(output_dir).resolve()
        self.phospho = phospho
        self.folders: Dict[str, Path] = {
            key: self.output_dir / name
            for key, name in OUTPUT_FOLDERS.items()
            if key != "phospho"
        }

    def create(self) -> "OutputLayout":
        """Create the output folder tree."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for key, folder in self.folders.items():
            folder.mkdir(exist_ok=True)
            if self.phospho and key != "log":
                (folder / OUTPUT_FOLDERS["phospho"]).mkdir(exist_ok=True)
        logger.info(f"Output directory: {self.output_dir}")
        return self

    def _folder(self, key: str, phospho: bool) -> Path:
        folder = self.folders[key]
        return folder / OUTPUT_FOLDERS["phospho"] if phospho else folder

    @staticmethod
    def _suffix(phospho: bool) -> str:
        return "_phospho" if phospho else ""

    def log_file(self, stem: str) -> Path:
        return self.folders["log"] / f"{stem}_log.txt"

    def scans_file(self, stem: str, phospho: bool = False) -> Path:
        return self._folder("scans", phospho) / f"{stem}_scans{self._suffix(phospho)}.csv"

    def target_decoy_file(self, stem: str, decoy: bool, phospho: bool = False) -> Path:
        kind = "decoy" if decoy else "target"
        return self._folder("target_decoy", phospho) / f"{stem}_{kind}{self._suffix(phospho)}.csv"

    def unique_file(self, stem: str, decoy: bool, phospho: bool = False) -> Path:
        kind = "decoy" if decoy else "target"
        return self._folder("unique", phospho) / f"{stem}_{kind}_unique{self._suffix(phospho)}.csv"

    def overall_file(self, name: str, phospho: bool = False) -> Path:
        """Batch-wide report, e.g. ``overall_file("target_unique")``."""
        return self.output_dir / f"{name}{self._suffix(phospho)}.csv"

    @property
    def overall_log_file(self) -> Path:
        return self.output_dir / OVERALL_LOG_FILENAME

    @property
    def summary_file(self) -> Path:
        return self.output_dir / SUMMARY_FILENAME

