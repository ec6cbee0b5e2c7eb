#!/usr/bin/env python3
"""
Batch FDR Optimizer CLI - Command-line interface for optimizing target-decoy
FDR thresholds over a batch of peptide identification files.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click

from batch_fdr import __version__
from batch_fdr.config import (
    DEFAULT_MAX_FDR_PERCENT,
    DEFAULT_MAX_PRECURSOR_MASS_ERROR_PPM,
    DEFAULT_PRECURSOR_MASS_ERROR_INCREMENT_PPM,
    OptimizerSettings,
)
from batch_fdr.core.events import CompositeListener, LoggingListener, OptimizerListener
from batch_fdr.utils.logging import setup_logging


class ProgressBarListener(OptimizerListener):
    """Shows optimizer progress as a click progress bar."""

    def __init__(self):
        self._bar = None
        self._position = 0

    def on_start(self, n_files: int) -> None:
        self._bar = click.progressbar(length=100, label=f"Optimizing {n_files} file(s)")
        self._bar.__enter__()
        self._position = 0

    def on_progress(self, percent: float) -> None:
        if self._bar is None:
            return
        position = int(percent)
        if position > self._position:
            self._bar.update(position - self._position)
            self._position = position

    def _close(self) -> None:
        if self._bar is not None:
            self._bar.__exit__(None, None, None)
            self._bar = None

    def on_fatal_error(self, error: BaseException) -> None:
        self._close()

    def on_finish(self) -> None:
        self._close()


@click.group()
@click.version_option(version=__version__, prog_name="batchfdr")
def cli():
    """Batch FDR Optimizer - Target-decoy FDR optimization for batches of search results."""
    pass


@cli.command("optimize")
@click.argument(
    "identification_files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output folder for reports (default: <first input folder>/batch_fdr_output)",
)
@click.option(
    "--spectra-dir",
    "-s",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Folder searched recursively for mzML files (default: folder of each input file)",
)
@click.option(
    "--higher-is-better",
    is_flag=True,
    help="Higher scores are better (default: lower is better, as for E-values)",
)
@click.option(
    "--max-ppm",
    type=float,
    default=DEFAULT_MAX_PRECURSOR_MASS_ERROR_PPM,
    show_default=True,
    help="Maximum precursor mass error searched (ppm)",
)
@click.option(
    "--ppm-increment",
    type=float,
    default=DEFAULT_PRECURSOR_MASS_ERROR_INCREMENT_PPM,
    show_default=True,
    help="Precursor mass error increment of the search grid (ppm)",
)
@click.option(
    "--max-fdr",
    type=float,
    default=DEFAULT_MAX_FDR_PERCENT,
    show_default=True,
    help="Maximum false discovery rate (%)",
)
@click.option(
    "--unique",
    is_flag=True,
    help="Compute and optimize FDR on unique peptide sequences instead of scans",
)
@click.option(
    "--no-overall",
    is_flag=True,
    help="Do not write the batch-wide reports, batch log and summary.csv",
)
@click.option(
    "--phospho",
    is_flag=True,
    help="Also write phosphopeptide subsets of every report",
)
@click.option(
    "--skip-malformed",
    is_flag=True,
    help="Skip unparsable identification rows with a warning instead of failing",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write a debug-level log of the run to this file",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v for INFO, -vv for DEBUG)",
)
def optimize(
    identification_files: Tuple[Path, ...],
    output_dir: Optional[Path],
    spectra_dir: Optional[Path],
    higher_is_better: bool,
    max_ppm: float,
    ppm_increment: float,
    max_fdr: float,
    unique: bool,
    no_overall: bool,
    phospho: bool,
    skip_malformed: bool,
    log_file: Optional[Path],
    verbose: int,
):
    """
    Optimize FDR thresholds over a batch of identification CSV files.

    Each CSV file is matched to the mzML file with the same (or the longest
    matching prefix of its) name. A single q-value, score and precursor mass
    tolerance is chosen for the whole batch.

    \b
    Examples:
      batchfdr optimize run1.csv run2.csv -o results
      batchfdr optimize *.csv -s mzml/ -o results --unique --phospho
      batchfdr optimize run1.csv --max-ppm 20 --ppm-increment 1 --max-fdr 5 -v
    """
    setup_logging(verbose, log_file)
    logger = logging.getLogger("batch_fdr")

    settings = OptimizerSettings(
        higher_scores_are_better=higher_is_better,
        max_precursor_mass_error_ppm=max_ppm,
        precursor_mass_error_increment_ppm=ppm_increment,
        max_fdr_percent=max_fdr,
        unique=unique,
        overall_outputs=not no_overall,
        phosphopeptide_outputs=phospho,
        skip_malformed_records=skip_malformed,
    )
    try:
        settings.validate()
    except ValueError as e:
        click.secho(f"Error: {e}", fg="red")
        sys.exit(1)

    try:
        from batch_fdr.core.optimizer import BatchFdrOptimizer

        listeners = [LoggingListener()]
        if verbose == 0:
            listeners.append(ProgressBarListener())

        optimizer = BatchFdrOptimizer(
            identification_files=list(identification_files),
            output_dir=output_dir,
            settings=settings,
            spectra_dir=spectra_dir,
            listener=CompositeListener(listeners),
        )
        result = optimizer.run()

        if not result.success:
            click.secho(f"Optimization failed: {result.error_message}", fg="red")
            sys.exit(1)

        summary = result.summary
        thresholds = result.thresholds
        click.echo()
        if result.thresholds_found:
            click.secho("Optimization complete!", fg="green", bold=True)
        else:
            click.secho(
                f"No threshold satisfies the {max_fdr}% FDR bound; no peptides were accepted.",
                fg="yellow",
                bold=True,
            )
            logger.warning("No global threshold found")
        click.echo(f"  Output: {result.output_dir}")
        click.echo(f"  Q-value threshold (%): {thresholds.q_value_threshold}")
        click.echo(f"  Score threshold: {thresholds.score_threshold}")
        click.echo(f"  Precursor mass tolerance (ppm): ±{thresholds.mass_tolerance_ppm}")
        click.echo(f"  Target peptides: {summary.targets}, decoy peptides: {summary.decoys}")
        click.echo(
            f"  Unique target sequences: {summary.overall_unique_targets}, "
            f"unique decoy sequences: {summary.overall_unique_decoys}"
        )
        fdr = summary.overall_unique_fdr if unique else summary.fdr
        click.echo(f"  FDR (%): {fdr}")
        sys.exit(0)

    except Exception as e:
        click.secho(f"Error: {str(e)}", fg="red")
        if verbose >= 2:
            import traceback

            traceback.print_exc()
        sys.exit(1)


@cli.command("inspect")
@click.argument("identification_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--skip-malformed",
    is_flag=True,
    help="Skip unparsable rows instead of failing",
)
def inspect(identification_file: Path, skip_malformed: bool):
    """
    Display record counts of one identification file.

    Reads the file without its spectral source.

    \b
    Example:
      batchfdr inspect run1.csv
    """
    from batch_fdr.config import PHOSPHO_MARKER
    from batch_fdr.errors import BatchFdrError
    from batch_fdr.io.reader import IdentificationReader

    reader = IdentificationReader(identification_file, skip_malformed=skip_malformed)
    scans = set()
    n_records = n_decoys = n_phospho = 0
    try:
        for record in reader.records():
            n_records += 1
            scans.add(record.scan_number)
            if record.is_decoy:
                n_decoys += 1
            if PHOSPHO_MARKER in record.modifications:
                n_phospho += 1
    except BatchFdrError as e:
        click.secho(f"Error: {e}", fg="red")
        sys.exit(1)

    click.echo(f"Identification file: {identification_file}")
    click.echo(f"Records: {n_records}")
    click.echo(f"Scans: {len(scans)}")
    click.echo(f"Target records: {n_records - n_decoys}")
    click.echo(f"Decoy records: {n_decoys}")
    click.echo(f"Phosphopeptide records: {n_phospho}")
    if reader.n_skipped:
        click.echo(f"Skipped malformed rows: {reader.n_skipped}")


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
