"""
Configuration constants and defaults for the Batch FDR Optimizer.

Identification file layout
~~~~~~~~~~~~~~~~~~~~~~~~~~
Input files follow the OMSSA comma separated layout:

* ``0``  spectrum number
* ``2``  peptide sequence
* ``3``  E-value (the score)
* ``9``  defline (decoy proteins carry a ``DECOY`` or ``REVERSED`` tag)
* ``10`` variable modifications
* ``11`` precursor charge
* ``12`` theoretical neutral mass

Only the positions are relied upon; header names are echoed untouched
into the reports.
"""

from dataclasses import dataclass
from typing import Dict, List

# =============================================================================
# Statistics
# =============================================================================

# FDR bound (%) used only to pick the high-confidence subset whose median
# precursor mass error becomes the systematic offset of a file.
MAXIMUM_FDR_FOR_SYSTEMATIC_PRECURSOR_MASS_ERROR = 1.0

# Defaults for the user-facing optimizer settings
DEFAULT_MAX_PRECURSOR_MASS_ERROR_PPM = 10.0
DEFAULT_PRECURSOR_MASS_ERROR_INCREMENT_PPM = 0.5
DEFAULT_MAX_FDR_PERCENT = 1.0

# =============================================================================
# Identification records
# =============================================================================

RECORD_COLUMNS: Dict[str, int] = {
    "scan_number": 0,
    "sequence": 2,
    "score": 3,
    "defline": 9,
    "modifications": 10,
    "charge": 11,
    "theoretical_mass": 12,
}

DECOY_MARKERS = ("DECOY", "REVERSED")
PHOSPHO_MARKER = "phosphorylation"

# Rows per pandas chunk while reading identification files
READ_CHUNK_SIZE = 1000

# =============================================================================
# Spectral sources
# =============================================================================

SPECTRAL_SOURCE_EXTENSIONS = [".mzml"]

PROTON_MASS = 1.00727646688
C13_C12_MASS_DIFFERENCE = 1.0033548378

# Mis-selected precursor isotope peaks considered (0 = monoisotopic)
MAX_ISOTOPE_SHIFT = 3

# =============================================================================
# Report layout
# =============================================================================

EXTENDED_COLUMNS: List[str] = [
    "Precursor Isolation m/z",
    "Precursor Isolation Mass (Da)",
    "Precursor Theoretical Neutral Mass (Da)",
    "Precursor Experimental Neutral Mass (Da)",
    "Precursor Mass Error (ppm)",
    "Adjusted Precursor Mass Error (ppm)",
    "Q-Value (%)",
]

OUTPUT_FOLDERS: Dict[str, str] = {
    "log": "log",
    "scans": "scans",
    "target_decoy": "target-decoy",
    "unique": "unique",
    "phospho": "phospho",
}

OVERALL_LOG_FILENAME = "Batch_FDR_Optimizer_log.txt"
SUMMARY_FILENAME = "summary.csv"

SUMMARY_FILE_KEY = "SUM"
SUMMARY_OVERALL_KEY = "OVERALL"


@dataclass
class OptimizerSettings:
    """User-configurable options of an optimization run."""

    higher_scores_are_better: bool = False
    max_precursor_mass_error_ppm: float = DEFAULT_MAX_PRECURSOR_MASS_ERROR_PPM
    precursor_mass_error_increment_ppm: float = DEFAULT_PRECURSOR_MASS_ERROR_INCREMENT_PPM
    max_fdr_percent: float = DEFAULT_MAX_FDR_PERCENT
    # Count distinct sequences instead of hits when computing FDRs
    unique: bool = False
    overall_outputs: bool = True
    phosphopeptide_outputs: bool = False
    skip_malformed_records: bool = False

    def validate(self) -> None:
        """
        Check the numeric options.

        Raises:
            ValueError: If a tolerance, increment or FDR bound is out of range
        """
        if self.precursor_mass_error_increment_ppm <= 0:
            raise ValueError(
                f"Precursor mass error increment must be positive, "
                f"got {self.precursor_mass_error_increment_ppm}"
            )
        if self.max_precursor_mass_error_ppm < self.precursor_mass_error_increment_ppm:
            raise ValueError(
                f"Maximum precursor mass error ({self.max_precursor_mass_error_ppm} ppm) "
                f"is smaller than the increment ({self.precursor_mass_error_increment_ppm} ppm)"
            )
        if self.max_fdr_percent < 0:
            raise ValueError(f"Maximum FDR must not be negative, got {self.max_fdr_percent}")

    def describe(self) -> List[str]:
        """Parameter lines written at the top of every log file."""
        return [
            "Batch FDR Optimizer PARAMETERS",
            f"Maximum Precursor Mass Error (ppm): ±{self.max_precursor_mass_error_ppm}",
            f"Precursor Mass Error Increment (ppm): {self.precursor_mass_error_increment_ppm}",
            f"Higher Scores are Better: {self.higher_scores_are_better}",
            f"Maximum False Discovery Rate (%): {self.max_fdr_percent}",
            f"FDR Calculation and Optimization Based on Unique Peptide Sequences: {self.unique}",
        ]
