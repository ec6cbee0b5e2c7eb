"""Exceptions raised by the Batch FDR Optimizer."""


class BatchFdrError(Exception):
    """Base class for all optimizer errors."""


class MissingInputError(BatchFdrError):
    """A spectral source (or a scan inside it) could not be found."""


class MalformedRecordError(BatchFdrError, ValueError):
    """An identification record could not be parsed."""

    def __init__(self, message: str, source: str = "", line_number: int = 0):
        if source:
            message = f"{source}, line {line_number}: {message}"
        super().__init__(message)
        self.source = source
        self.line_number = line_number
