"""
log.py — logging setup for scripts using nanohmm

The library itself only creates module-level loggers and never installs
handlers.  Scripts call setup_logging() once; the lattice fill's per-cell
trace is emitted when the 'nanohmm.dp_core' logger is at DEBUG.
"""

import logging
import sys

LOG_FORMAT = '%(asctime)s - %(levelname)s - [%(name)s:%(funcName)s] - %(message)s'


def setup_logging(log_level=logging.INFO, trace_fill: bool = False) -> logging.Logger:
    """
    Configure console logging for the nanohmm package logger.

    Args:
        log_level (int): Level for the package logger (e.g. logging.INFO).
        trace_fill (bool): If True, enable the per-cell DEBUG trace of the
            lattice fill regardless of log_level.

    Returns:
        logging.Logger: The configured 'nanohmm' logger.
    """
    package_logger = logging.getLogger("nanohmm")

    # Remove handlers from earlier calls so messages are not duplicated
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(console_handler)
    package_logger.setLevel(log_level)

    fill_logger = logging.getLogger("nanohmm.dp_core")
    fill_logger.setLevel(logging.DEBUG if trace_fill else logging.NOTSET)

    package_logger.debug(f"Logger configured. Level: {logging.getLevelName(log_level)}")
    return package_logger
