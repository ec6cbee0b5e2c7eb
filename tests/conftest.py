"""
Pytest configuration and fixtures for Batch FDR Optimizer tests.
"""

import math
from pathlib import Path
from typing import List, Sequence

import pytest

from batch_fdr.config import PROTON_MASS
from batch_fdr.model.hit import PeptideHit, PrecursorMetadata


OMSSA_HEADER = [
    "Spectrum number",
    " Filename/id",
    " Peptide",
    " E-value",
    " Mass",
    " gi",
    " Accession",
    " Start",
    " Stop",
    " Defline",
    " Mods",
    " Charge",
    " Theo Mass",
    " P-value",
    " NIST score",
]


def make_hit(
    scan: int,
    sequence: str = "PEPTIDE",
    score: float = 0.01,
    is_decoy: bool = False,
    mass_error_ppm: float = 0.0,
    modifications: str = "",
    charge: int = 2,
    q_value: float = math.nan,
    adjusted_mass_error_ppm: float = math.nan,
) -> PeptideHit:
    """Build a PeptideHit with a synthetic precursor."""
    theoretical = 1000.0
    experimental = theoretical * (1 + mass_error_ppm * 1e-6)
    precursor = PrecursorMetadata(
        isolation_mz=experimental / charge + PROTON_MASS,
        isolation_mass=experimental,
        theoretical_neutral_mass=theoretical,
        experimental_neutral_mass=experimental,
        mass_error_ppm=mass_error_ppm,
    )
    return PeptideHit(
        scan_number=scan,
        sequence=sequence,
        score=score,
        is_decoy=is_decoy,
        modifications=modifications,
        charge=charge,
        precursor=precursor,
        fields=(str(scan), "", sequence, str(score)),
        adjusted_mass_error_ppm=adjusted_mass_error_ppm,
        q_value=q_value,
    )


def isolation_mz_for(theoretical_mass: float, charge: int, ppm: float) -> float:
    """Isolation m/z that yields ``ppm`` error against ``theoretical_mass``."""
    experimental = theoretical_mass * (1 + ppm * 1e-6)
    return experimental / charge + PROTON_MASS


def omssa_row(
    scan: int,
    peptide: str,
    evalue: float,
    decoy: bool = False,
    mods: str = "",
    charge: int = 2,
    theo_mass: float = 1000.0,
) -> List[str]:
    """One identification row in OMSSA column order."""
    defline = "DECOY_sp|P00001|REV" if decoy else "sp|P00001|PROT_HUMAN Protein"
    return [
        str(scan),
        f"run.{scan}.{scan}.{charge}.dta",
        peptide,
        repr(evalue),
        repr(theo_mass),
        "0",
        "P00001",
        "1",
        str(len(peptide)),
        f'"{defline}"',
        f'"{mods}"' if mods else "",
        str(charge),
        repr(theo_mass),
        repr(evalue),
        "0",
    ]


def write_omssa_csv(path: Path, rows: Sequence[Sequence[str]]) -> Path:
    """Write an OMSSA-style CSV file."""
    path = Path(path)
    lines = [",".join(OMSSA_HEADER)] + [",".join(row) for row in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def omssa_csv(tmp_path):
    """Return a function writing OMSSA rows to ``tmp_path/<name>``."""

    def _write(name: str, rows: Sequence[Sequence[str]]) -> Path:
        return write_omssa_csv(tmp_path / name, rows)

    return _write
