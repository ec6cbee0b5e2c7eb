"""Utility functions."""

from batch_fdr.utils.logging import setup_logging
from batch_fdr.utils.output_layout import OutputLayout

__all__ = ["setup_logging", "OutputLayout"]
