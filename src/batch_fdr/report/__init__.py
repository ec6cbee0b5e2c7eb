"""Report generation: CSV hit tables, summary and plain text logs."""

from batch_fdr.report.generator import LogGenerator
from batch_fdr.report.writer import ReportWriter, hits_to_dataframe

__all__ = ["LogGenerator", "ReportWriter", "hits_to_dataframe"]
