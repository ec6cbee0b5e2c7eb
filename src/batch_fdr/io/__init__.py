"""Input readers: identification files and spectral sources."""

from batch_fdr.io.reader import IdentificationReader, parse_record
from batch_fdr.io.spectra import (
    InMemoryMetadataProvider,
    MzMLMetadataProvider,
    SpectralMetadataProvider,
    locate_spectral_source,
)

__all__ = [
    "IdentificationReader",
    "parse_record",
    "InMemoryMetadataProvider",
    "MzMLMetadataProvider",
    "SpectralMetadataProvider",
    "locate_spectral_source",
]
