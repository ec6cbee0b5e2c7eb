"""
BatchFdrOptimizer - Main orchestration class for batch FDR optimization.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from batch_fdr.config import OptimizerSettings
from batch_fdr.core.events import LoggingListener, OptimizerListener, ProgressTracker
from batch_fdr.errors import BatchFdrError, MissingInputError
from batch_fdr.fdr.aggregator import Aggregator, BatchSummary
from batch_fdr.fdr.analysis import FileAnalysis
from batch_fdr.fdr.scan_reducer import ScanReducer
from batch_fdr.fdr.threshold_search import GlobalThresholdSearch, ThresholdResult
from batch_fdr.fdr.uniqueness import merge_unique
from batch_fdr.io.reader import IdentificationReader
from batch_fdr.io.spectra import (
    MzMLMetadataProvider,
    SpectralMetadataProvider,
    locate_spectral_source,
)
from batch_fdr.model.hit import PeptideHit, ScorePolarity, SequenceWinners
from batch_fdr.report.generator import LogGenerator
from batch_fdr.report.writer import ReportWriter
from batch_fdr.utils.output_layout import OutputLayout

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[Path], SpectralMetadataProvider]


@dataclass
class OptimizationResult:
    """Result of the optimization process."""

    success: bool
    output_dir: Optional[Path] = None
    error_message: Optional[str] = None
    error: Optional[BaseException] = None
    analyses: List[FileAnalysis] = field(default_factory=list)
    thresholds: Optional[ThresholdResult] = None
    overall: Optional[SequenceWinners] = None
    summary: Optional[BatchSummary] = None

    @property
    def thresholds_found(self) -> bool:
        return self.thresholds is not None and self.thresholds.found


class BatchFdrOptimizer:
    """
    Main class that orchestrates the batch optimization workflow.

    Workflow:
    1. Locate the spectral source of every identification file
    2. Per file: read records, attach precursor metadata, reduce to one hit
       per scan, calibrate mass errors and compute q-values
    3. Search the pooled hits for the global (q-value, score, tolerance)
       thresholds
    4. Apply the thresholds to every file and reduce per sequence
    5. Aggregate counts and write reports
    """

    def __init__(
        self,
        identification_files: Sequence[Path],
        output_dir: Optional[Path] = None,
        settings: Optional[OptimizerSettings] = None,
        spectra_dir: Optional[Path] = None,
        listener: Optional[OptimizerListener] = None,
        provider_factory: Optional[ProviderFactory] = None,
        write_reports: bool = True,
    ):
        """
        Initialize batch optimizer.

        Args:
            identification_files: Identification CSV files, in batch order
            output_dir: Folder receiving the reports (default: next to the
                first identification file)
            settings: Optimizer settings (default: OptimizerSettings())
            spectra_dir: Folder searched for spectral sources (default: the
                folder of each identification file)
            listener: Receives progress and lifecycle events
            provider_factory: Opens a spectral source; defaults to the
                pyopenms mzML provider
            write_reports: If False, only compute results in memory
        """
        self.identification_files = [Path(f) for f in identification_files]
        self.settings = settings or OptimizerSettings()
        self.spectra_dir = Path(spectra_dir) if spectra_dir else None
        self.listener = listener or LoggingListener()
        self.provider_factory = provider_factory or MzMLMetadataProvider
        self.write_reports = write_reports
        self.polarity = ScorePolarity(self.settings.higher_scores_are_better)

        if output_dir:
            self.output_dir = Path(output_dir)
        elif self.identification_files:
            self.output_dir = self.identification_files[0].parent / "batch_fdr_output"
        else:
            self.output_dir = Path.cwd() / "batch_fdr_output"

    def run(self) -> OptimizationResult:
        """
        Execute the full optimization workflow.

        Any error aborts the whole batch: it is logged, reported once
        through ``on_fatal_error`` and returned in the result.

        Returns:
            OptimizationResult with outcome and statistics
        """
        try:
            result = self._run_workflow()
        except Exception as e:
            import traceback
            logger.error(f"Optimization failed: {e}")
            logger.debug(traceback.format_exc())
            self.listener.on_fatal_error(e)
            return OptimizationResult(
                success=False, output_dir=self.output_dir, error_message=str(e), error=e
            )
        self.listener.on_finish()
        return result

    def _locate_sources(self) -> Dict[Path, List[Path]]:
        """Group identification files by spectral source, first-seen order."""
        groups: Dict[Path, List[Path]] = {}
        for path in self.identification_files:
            if not path.is_file():
                raise MissingInputError(f"Identification file not found: {path}")
            source = locate_spectral_source(path, self.spectra_dir)
            groups.setdefault(source, []).append(path)
        return groups

    def _run_workflow(self) -> OptimizationResult:
        settings = self.settings
        self.listener.on_start(len(self.identification_files))
        total_bytes = sum(
            path.stat().st_size for path in self.identification_files if path.is_file()
        )
        tracker = ProgressTracker(self.listener, total_bytes)
        tracker.start()

        settings.validate()
        if not self.identification_files:
            raise BatchFdrError("No identification files given")

        # Step 1: Locate spectral sources
        logger.info("Step 1: Locating spectral sources...")
        groups = self._locate_sources()
        logger.info(
            f"{len(self.identification_files)} identification files, "
            f"{len(groups)} spectral sources"
        )

        # Step 2: Per-file reduction, calibration and q-values
        logger.info("Step 2: Reading identifications...")
        by_file: Dict[Path, FileAnalysis] = {}
        for source, files in groups.items():
            with self.provider_factory(source) as provider:
                for path in files:
                    self.listener.on_file_start(path)
                    by_file[path] = self._analyze_file(path, source, provider, tracker)
                    tracker.finish_file(path.stat().st_size)
                    self.listener.on_file_finish(path)
        analyses = [by_file[path] for path in self.identification_files]

        # Step 3: Global threshold search
        logger.info("Step 3: Searching global thresholds...")
        pool: List[PeptideHit] = [hit for analysis in analyses for hit in analysis.hits]
        search = GlobalThresholdSearch(
            polarity=self.polarity,
            max_fdr=settings.max_fdr_percent,
            max_tolerance_ppm=settings.max_precursor_mass_error_ppm,
            increment_ppm=settings.precursor_mass_error_increment_ppm,
            unique=settings.unique,
        )
        thresholds = search.search(pool)

        # Step 4: Apply thresholds and reduce per sequence
        logger.info("Step 4: Applying thresholds...")
        for analysis in analyses:
            analysis.apply_thresholds(thresholds, self.polarity)
        overall = merge_unique((a.unique for a in analyses), self.polarity)

        # Step 5: Aggregate
        aggregator = Aggregator(thresholds, unique=settings.unique)
        for analysis in analyses:
            aggregator.add_file(analysis)
        aggregator.add_overall(overall)

        if self.write_reports:
            logger.info("Step 5: Writing reports...")
            self._write_reports(analyses, overall, aggregator)

        tracker.finish()

        return OptimizationResult(
            success=True,
            output_dir=self.output_dir,
            analyses=analyses,
            thresholds=thresholds,
            overall=overall,
            summary=aggregator.summary,
        )

    def _analyze_file(
        self,
        path: Path,
        spectral_source: Path,
        provider: SpectralMetadataProvider,
        tracker: ProgressTracker,
    ) -> FileAnalysis:
        reader = IdentificationReader(path, skip_malformed=self.settings.skip_malformed_records)
        reducer = ScanReducer(self.polarity)

        for record in reader.records(on_bytes=tracker.update):
            precursor = provider.precursor_metadata(
                record.scan_number, record.charge, record.theoretical_mass
            )
            reducer.add(PeptideHit.from_record(record, precursor))

        analysis = FileAnalysis(
            source=path,
            spectral_source=spectral_source,
            reduction=reducer.result(),
            header=reader.header,
        )
        logger.info(
            f"{analysis.name}: {analysis.reduction.n_input_hits} hits on "
            f"{analysis.reduction.n_scans} scans"
        )
        analysis.prepare(self.polarity, unique=self.settings.unique)
        return analysis

    def _write_reports(
        self,
        analyses: List[FileAnalysis],
        overall: SequenceWinners,
        aggregator: Aggregator,
    ) -> None:
        settings = self.settings
        layout = OutputLayout(self.output_dir, phospho=settings.phosphopeptide_outputs).create()
        writer = ReportWriter(layout, phospho=settings.phosphopeptide_outputs)
        log_generator = LogGenerator(settings)
        summary = aggregator.summary

        for analysis, file_summary in zip(analyses, summary.files):
            paths = writer.write_scans(analysis)
            paths.update(writer.write_file_reports(analysis))
            log_generator.generate_file_log(
                analysis, file_summary, summary.thresholds, paths, layout.log_file(analysis.name)
            )

        if settings.overall_outputs:
            paths = writer.write_overall_reports(analyses, overall)
            log_generator.generate_overall_log(analyses, summary, paths, layout.overall_log_file)
            writer.write_summary(aggregator.summary_rows(phospho=settings.phosphopeptide_outputs))
