"""Target-decoy FDR engine: scan reduction, calibration, q-values and thresholds."""

from batch_fdr.fdr.aggregator import Aggregator, BatchSummary, FileSummary
from batch_fdr.fdr.analysis import FileAnalysis
from batch_fdr.fdr.calibration import CalibrationResult, calibrate, estimate_systematic_error
from batch_fdr.fdr.qvalue import compute_q_values
from batch_fdr.fdr.scan_reducer import ScanReducer, ScanReduction, reduce_scans
from batch_fdr.fdr.threshold_search import GlobalThresholdSearch, ThresholdResult
from batch_fdr.fdr.uniqueness import merge_unique, reduce_unique

__all__ = [
    "Aggregator",
    "BatchSummary",
    "FileSummary",
    "FileAnalysis",
    "CalibrationResult",
    "calibrate",
    "estimate_systematic_error",
    "compute_q_values",
    "ScanReducer",
    "ScanReduction",
    "reduce_scans",
    "GlobalThresholdSearch",
    "ThresholdResult",
    "merge_unique",
    "reduce_unique",
]
