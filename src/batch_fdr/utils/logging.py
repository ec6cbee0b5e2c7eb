"""Console and file logging for batch optimization runs."""

import logging
import sys
from pathlib import Path
from typing import List, Optional

_CONSOLE_FORMAT = "%(levelname)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def verbosity_to_level(verbose: int) -> int:
    """Map a ``-v`` count to a level: 0=WARNING, 1=INFO, 2+=DEBUG."""
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(verbose: int = 0, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure logging for a run.

    Console messages go to stderr so that stdout stays free for command
    output. Calling this again replaces the previous configuration.

    Args:
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG)
        log_file: Optional file that additionally receives every message
            at DEBUG level, with timestamps

    Returns:
        The package logger
    """
    log_level = verbosity_to_level(verbose)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(log_level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    handlers: List[logging.Handler] = [console]

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=logging.WARNING, handlers=handlers, force=True)

    logger = logging.getLogger("batch_fdr")
    logger.setLevel(logging.DEBUG if log_file else log_level)

    return logger
