"""Logging configuration for the skill output validator."""

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(debug: bool = False, log_file: Path | None = None) -> logging.Logger:
    """Setup logging for a validator run and return the root logger.

    Log records go to stderr so stdout stays reserved for the report.
    When ``log_file`` is given, records are also appended to it.
    """
    level = logging.DEBUG if debug else logging.WARNING
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    file_error: OSError | None = None
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as e:
            file_error = e

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
    if file_error is not None:
        logging.getLogger(__name__).warning("Cannot write log file %s, logging to stderr only: %s", log_file, file_error)

    # Suppress noisy library logs
    logging.getLogger("jsonschema").setLevel(logging.WARNING)
    logging.getLogger("yaml").setLevel(logging.WARNING)
    return logging.getLogger()
