"""
Batch FDR Optimizer - Target-decoy FDR optimization across a batch of
peptide identification files.

Reads search engine identifications together with their mzML spectral
sources, corrects systematic precursor mass errors, and finds a single
(q-value, score, mass tolerance) threshold that maximizes accepted target
peptides at a fixed false discovery rate for the whole batch.
"""

__version__ = "1.0.0"

from batch_fdr.config import OptimizerSettings
from batch_fdr.core.optimizer import BatchFdrOptimizer, OptimizationResult

__all__ = ["BatchFdrOptimizer", "OptimizationResult", "OptimizerSettings", "__version__"]
