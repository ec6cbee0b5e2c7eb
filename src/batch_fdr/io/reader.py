"""
IdentificationReader - Read OMSSA-style identification CSV files.
"""

import logging
import math
import re
from pathlib import Path
from typing import Callable, Iterator, List, Optional

import pandas as pd

from batch_fdr.config import READ_CHUNK_SIZE, RECORD_COLUMNS
from batch_fdr.errors import MalformedRecordError
from batch_fdr.model.hit import IdentificationRecord

logger = logging.getLogger(__name__)

_MIN_FIELDS = max(RECORD_COLUMNS.values()) + 1

# Suffix pandas appends to duplicate column names (.1, .2, ...)
_PANDAS_DUP_SUFFIX = re.compile(r"\.\d+$")


def _is_missing(value) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def strip_duplicate_suffixes(columns: List[str]) -> List[str]:
    """
    Undo the ``.1``, ``.2``, ... suffixes pandas appends to duplicate
    column names, so reports echo the header exactly as read.

    A suffix is only stripped when its base name appeared earlier.
    """
    seen = set()
    clean: List[str] = []
    for col in columns:
        m = _PANDAS_DUP_SUFFIX.search(col)
        if m and col[: m.start()] in seen:
            col = col[: m.start()]
        seen.add(col)
        clean.append(col)
    return clean


def parse_record(values: List, source: str = "", line_number: int = 0) -> IdentificationRecord:
    """
    Parse one row of an identification file.

    Args:
        values: Field values of the row, in file order
        source: File name used in error messages
        line_number: 1-based line number used in error messages

    Returns:
        IdentificationRecord

    Raises:
        MalformedRecordError: If the row is too short or a numeric field
            cannot be parsed
    """
    if len(values) < _MIN_FIELDS or any(
        _is_missing(values[i]) for i in RECORD_COLUMNS.values()
    ):
        raise MalformedRecordError(
            f"expected at least {_MIN_FIELDS} fields", source, line_number
        )

    fields = tuple("" if _is_missing(v) else str(v) for v in values)

    def field_value(name: str) -> str:
        return fields[RECORD_COLUMNS[name]].strip()

    try:
        scan_number = int(field_value("scan_number"))
        score = float(field_value("score"))
        charge = int(field_value("charge"))
        theoretical_mass = float(field_value("theoretical_mass"))
    except ValueError as e:
        raise MalformedRecordError(str(e), source, line_number) from e

    if math.isnan(score) or math.isnan(theoretical_mass):
        raise MalformedRecordError("score and theoretical mass must be numbers", source, line_number)
    if charge <= 0:
        raise MalformedRecordError(f"invalid charge {charge}", source, line_number)

    return IdentificationRecord(
        scan_number=scan_number,
        sequence=field_value("sequence"),
        score=score,
        is_decoy=IdentificationRecord.is_decoy_defline(field_value("defline")),
        modifications=field_value("modifications"),
        charge=charge,
        theoretical_mass=theoretical_mass,
        fields=fields,
    )


class IdentificationReader:
    """
    Streams identification records from one CSV file.

    Rows are read with pandas in chunks so that callers can follow progress
    in bytes consumed.
    """

    def __init__(
        self,
        path: Path,
        skip_malformed: bool = False,
        chunk_size: int = READ_CHUNK_SIZE,
    ):
        """
        Initialize reader.

        Args:
            path: Identification CSV file
            skip_malformed: Log and skip unparsable rows instead of raising
            chunk_size: Rows per pandas chunk
        """
        self.path = Path(path)
        self.skip_malformed = skip_malformed
        self.chunk_size = chunk_size
        self.header: List[str] = []
        self.n_skipped = 0

    @property
    def total_bytes(self) -> int:
        return self.path.stat().st_size

    def records(
        self, on_bytes: Optional[Callable[[int], None]] = None
    ) -> Iterator[IdentificationRecord]:
        """
        Yield records in file order.

        Args:
            on_bytes: Called after each chunk with the number of bytes of
                this file consumed so far

        Raises:
            MalformedRecordError: On the first bad row, unless
                ``skip_malformed`` is set
        """
        logger.info(f"Reading identifications: {self.path}")
        self.n_skipped = 0
        line_number = 1

        # A callable on_bad_lines needs the python engine
        if self.skip_malformed:
            bad_lines = {"on_bad_lines": self._skip_bad_line, "engine": "python"}
        else:
            bad_lines = {"on_bad_lines": "error"}

        with open(self.path, "rb") as fh:
            try:
                chunks = pd.read_csv(
                    fh,
                    dtype=str,
                    keep_default_na=False,
                    skipinitialspace=True,
                    chunksize=self.chunk_size,
                    **bad_lines,
                )
                for chunk in chunks:
                    if not self.header:
                        self.header = strip_duplicate_suffixes([str(c) for c in chunk.columns])
                    for values in chunk.itertuples(index=False, name=None):
                        line_number += 1
                        record = self._parse(list(values), line_number)
                        if record is not None:
                            yield record
                    if on_bytes is not None:
                        on_bytes(fh.tell())
            except pd.errors.EmptyDataError:
                logger.warning(f"{self.path.name} is empty")
            except pd.errors.ParserError as e:
                raise MalformedRecordError(str(e), self.path.name, line_number) from e

        if on_bytes is not None:
            on_bytes(self.total_bytes)
        if self.n_skipped:
            logger.warning(f"Skipped {self.n_skipped} malformed rows in {self.path.name}")

    def _skip_bad_line(self, fields: List[str]) -> None:
        """Rows pandas cannot split into the header's columns."""
        logger.warning(
            f"Skipping malformed record in {self.path.name}: "
            f"{len(fields)} fields ({','.join(fields[:3])}...)"
        )
        self.n_skipped += 1
        return None

    def _parse(self, values: List, line_number: int) -> Optional[IdentificationRecord]:
        try:
            return parse_record(values, self.path.name, line_number)
        except MalformedRecordError as e:
            if not self.skip_malformed:
                raise
            logger.warning(f"Skipping malformed record: {e}")
            self.n_skipped += 1
            return None
