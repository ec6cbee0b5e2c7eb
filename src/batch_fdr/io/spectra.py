"""
Spectral metadata providers - precursor information per MS/MS scan.

Provides the shared mass arithmetic (isolation mass, isotope-corrected
experimental mass, ppm error) and defines the interface that source
specific providers must implement. Also locates the spectral source that
belongs to an identification file.
"""

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from batch_fdr.config import (
    C13_C12_MASS_DIFFERENCE,
    MAX_ISOTOPE_SHIFT,
    PROTON_MASS,
    SPECTRAL_SOURCE_EXTENSIONS,
)
from batch_fdr.errors import MissingInputError
from batch_fdr.model.hit import PrecursorMetadata

logger = logging.getLogger(__name__)

_SCAN_ID_PATTERN = re.compile(r"scan=(\d+)")


def neutral_mass(mz: float, charge: int) -> float:
    """Neutral mass of an ion observed at ``mz`` with ``charge`` protons."""
    return (mz - PROTON_MASS) * charge


def mass_error_ppm(experimental: float, theoretical: float) -> float:
    """Relative mass error in ppm."""
    return (experimental - theoretical) / theoretical * 1e6


def isotope_corrected_mass(isolation_mass: float, theoretical_mass: float) -> float:
    """
    Experimental neutral mass corrected for isotope peak selection.

    Precursor selection frequently picks a 13C isotope peak instead of the
    monoisotopic one. The isolation mass is shifted down by the number of
    13C spacings (0 to ``MAX_ISOTOPE_SHIFT``) that brings it closest to the
    theoretical mass.
    """
    candidates = [
        isolation_mass - shift * C13_C12_MASS_DIFFERENCE for shift in range(MAX_ISOTOPE_SHIFT + 1)
    ]
    return min(candidates, key=lambda m: abs(m - theoretical_mass))


class SpectralMetadataProvider(ABC):
    """
    Abstract source of precursor isolation m/z values keyed by scan.

    Subclasses must implement ``isolation_mz``; ``precursor_metadata``
    derives all mass diagnostics from it.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None

    @abstractmethod
    def isolation_mz(self, scan_number: int) -> float:
        """
        Precursor isolation m/z of a scan.

        Raises:
            MissingInputError: If the scan is not present in the source
        """
        ...

    def precursor_metadata(
        self, scan_number: int, charge: int, theoretical_mass: float
    ) -> PrecursorMetadata:
        """
        Precursor diagnostics for one identification.

        Args:
            scan_number: Spectrum number as reported by the search engine
            charge: Precursor charge of the identification
            theoretical_mass: Theoretical neutral mass of the peptide (Da)

        Returns:
            PrecursorMetadata with the raw ppm error
        """
        mz = self.isolation_mz(scan_number)
        isolation_mass = neutral_mass(mz, charge)
        experimental = isotope_corrected_mass(isolation_mass, theoretical_mass)
        return PrecursorMetadata(
            isolation_mz=mz,
            isolation_mass=isolation_mass,
            theoretical_neutral_mass=theoretical_mass,
            experimental_neutral_mass=experimental,
            mass_error_ppm=mass_error_ppm(experimental, theoretical_mass),
        )

    def close(self) -> None:
        """Release resources held by the provider."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class InMemoryMetadataProvider(SpectralMetadataProvider):
    """Provider backed by a ``{scan: isolation m/z}`` mapping."""

    def __init__(self, isolation_mzs: Dict[int, float], path: Optional[Path] = None):
        super().__init__(path)
        self._isolation_mzs = dict(isolation_mzs)

    def isolation_mz(self, scan_number: int) -> float:
        try:
            return self._isolation_mzs[scan_number]
        except KeyError:
            raise MissingInputError(f"Scan {scan_number} not found in spectral source") from None


class MzMLMetadataProvider(SpectralMetadataProvider):
    """
    Reads precursor isolation m/z values from an mzML file with pyopenms.

    Spectrum numbers from the search engine count from zero; the scan
    looked up is ``spectrum number + first scan number`` of the file.
    """

    def __init__(self, path: Path):
        super().__init__(path)
        self._isolation_mzs: Dict[int, float] = {}
        self.first_scan_number = 1
        self._load()

    def _load(self) -> None:
        import pyopenms as oms

        logger.info(f"Loading spectral source: {self.path}")
        exp = oms.MSExperiment()
        oms.MzMLFile().load(str(self.path), exp)

        scan_numbers: List[int] = []
        for index in range(exp.getNrSpectra()):
            spec = exp.getSpectrum(index)
            scan_number = self._scan_number(spec.getNativeID(), index)
            scan_numbers.append(scan_number)

            if spec.getMSLevel() < 2:
                continue
            precursors = spec.getPrecursors()
            if precursors:
                self._isolation_mzs[scan_number] = float(precursors[0].getMZ())

        if scan_numbers:
            self.first_scan_number = min(scan_numbers)
        logger.info(
            f"Loaded {len(self._isolation_mzs)} MS/MS precursors from {self.path.name} "
            f"(first scan {self.first_scan_number})"
        )

    @staticmethod
    def _scan_number(native_id, index: int) -> int:
        native_id = native_id.decode() if isinstance(native_id, bytes) else str(native_id)
        match = _SCAN_ID_PATTERN.search(native_id)
        if match:
            return int(match.group(1))
        return index + 1

    def isolation_mz(self, scan_number: int) -> float:
        scan = scan_number + self.first_scan_number
        try:
            return self._isolation_mzs[scan]
        except KeyError:
            raise MissingInputError(
                f"Scan {scan} (spectrum {scan_number}) not found in {self.path.name}"
            ) from None

    def close(self) -> None:
        self._isolation_mzs = {}


def locate_spectral_source(
    identification_file: Path, search_dir: Optional[Path] = None
) -> Path:
    """
    Find the spectral source that belongs to an identification file.

    Searches ``search_dir`` (default: the identification file's folder)
    recursively for ``<stem>.mzML``. When nothing matches, the stem is
    shortened one character at a time, so ``run1_omssa.csv`` still finds
    ``run1.mzML``.

    Args:
        identification_file: Identification CSV file
        search_dir: Folder holding the spectral sources

    Returns:
        Path to the first matching source

    Raises:
        MissingInputError: If no source matches any prefix of the stem
    """
    identification_file = Path(identification_file)
    if search_dir is None or not Path(search_dir).is_dir():
        search_dir = identification_file.parent
    search_dir = Path(search_dir)

    candidates: Dict[str, List[Path]] = {}
    for path in sorted(search_dir.rglob("*")):
        if path.is_file() and path.suffix.lower() in SPECTRAL_SOURCE_EXTENSIONS:
            candidates.setdefault(path.stem.lower(), []).append(path)

    stem = identification_file.stem.lower()
    while stem:
        if stem in candidates:
            source = candidates[stem][0]
            logger.debug(f"{identification_file.name} -> {source}")
            return source
        stem = stem[:-1]

    raise MissingInputError(f"No corresponding spectral source found for {identification_file}")
