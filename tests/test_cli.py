"""
Tests for the command-line interface.
"""

import logging

import pytest
from click.testing import CliRunner

from batch_fdr import __version__
from batch_fdr.cli import cli
from batch_fdr.io.spectra import InMemoryMetadataProvider

from conftest import isolation_mz_for, omssa_row, write_omssa_csv


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to the runner's streams after each test."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def run_files(tmp_path, monkeypatch):
    """One identification file with its (placeholder) mzML source."""
    rows = [omssa_row(i, f"PEPTIDE{i}K", 1e-5 * (i + 1)) for i in range(10)]
    rows.append(omssa_row(10, "KEDITPEP", 1.0, decoy=True))
    rows.append(omssa_row(11, "SERINEK", 2e-5, mods="phosphorylation of S"))
    path = write_omssa_csv(tmp_path / "run1.csv", rows)
    (tmp_path / "run1.mzML").touch()

    mzs = {scan: isolation_mz_for(1000.0, 2, 2.0) for scan in range(12)}
    monkeypatch.setattr(
        "batch_fdr.core.optimizer.MzMLMetadataProvider",
        lambda source: InMemoryMetadataProvider(mzs, source),
    )
    return path


class TestOptimizeCommand:
    """Tests for ``batchfdr optimize``."""

    def test_success(self, runner, run_files, tmp_path):
        out = tmp_path / "results"
        result = runner.invoke(cli, ["optimize", str(run_files), "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert "Optimization complete!" in result.output
        assert "Target peptides: 11" in result.output
        assert (out / "summary.csv").is_file()
        assert (out / "log" / "run1_log.txt").is_file()

    def test_options_reach_settings(self, runner, run_files, tmp_path):
        out = tmp_path / "results"
        result = runner.invoke(cli, [
            "optimize", str(run_files), "-o", str(out),
            "--unique", "--phospho", "--max-ppm", "5", "--ppm-increment", "1",
            "--max-fdr", "5", "-v",
        ])

        assert result.exit_code == 0, result.output
        assert (out / "unique" / "phospho" / "run1_target_unique_phospho.csv").is_file()
        log_text = (out / "Batch_FDR_Optimizer_log.txt").read_text(encoding="utf-8")
        assert "Maximum Precursor Mass Error (ppm): ±5.0" in log_text
        assert "Unique Peptide Sequences: True" in log_text

    def test_no_threshold_warns(self, runner, tmp_path, monkeypatch):
        rows = [omssa_row(i, f"DECOY{i}K", 0.01, decoy=True) for i in range(3)]
        path = write_omssa_csv(tmp_path / "run1.csv", rows)
        (tmp_path / "run1.mzML").touch()
        monkeypatch.setattr(
            "batch_fdr.core.optimizer.MzMLMetadataProvider",
            lambda source: InMemoryMetadataProvider({i: 500.0 for i in range(3)}, source),
        )

        result = runner.invoke(cli, ["optimize", str(path), "-o", str(tmp_path / "out")])

        assert result.exit_code == 0, result.output
        assert "No threshold satisfies" in result.output

    def test_missing_spectral_source_fails(self, runner, tmp_path):
        path = write_omssa_csv(tmp_path / "orphan.csv", [omssa_row(0, "AAAK", 0.01)])

        result = runner.invoke(cli, ["optimize", str(path), "-o", str(tmp_path / "out")])

        assert result.exit_code == 1
        assert "Optimization failed" in result.output

    def test_invalid_increment(self, runner, run_files):
        result = runner.invoke(cli, ["optimize", str(run_files), "--ppm-increment", "0"])

        assert result.exit_code == 1
        assert "increment must be positive" in result.output

    def test_requires_files(self, runner):
        result = runner.invoke(cli, ["optimize"])
        assert result.exit_code != 0


class TestInspectCommand:
    """Tests for ``batchfdr inspect``."""

    def test_counts(self, runner, tmp_path):
        path = write_omssa_csv(tmp_path / "run1.csv", [
            omssa_row(0, "AAAK", 0.01),
            omssa_row(0, "CCCK", 0.02, decoy=True),
            omssa_row(1, "SSSK", 0.03, mods="phosphorylation of S"),
        ])

        result = runner.invoke(cli, ["inspect", str(path)])

        assert result.exit_code == 0, result.output
        assert "Records: 3" in result.output
        assert "Scans: 2" in result.output
        assert "Decoy records: 1" in result.output
        assert "Phosphopeptide records: 1" in result.output

    def test_malformed_file(self, runner, tmp_path):
        bad = omssa_row(0, "AAAK", 0.01)
        bad[11] = "z"
        path = write_omssa_csv(tmp_path / "run1.csv", [bad])

        result = runner.invoke(cli, ["inspect", str(path)])

        assert result.exit_code == 1
        assert "Error" in result.output


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert __version__ in result.output
