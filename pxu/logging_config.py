"""
Console and file output of the log records of the 'pxu' package.
"""

import logging
import sys
from typing import Optional

from pxu.core.profiling import Profiler


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None,
                  profile: bool = False) -> logging.Logger:
    """
    Route the records of the 'pxu' loggers to stdout and optionally to a file.

    DEBUG shows every crossed cut and every failed point update. With profile=True the
    @profile decorated methods are timed as well, see Profiler.log_summary().
    """
    logger = logging.getLogger("pxu")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    formatter = logging.Formatter("%(levelname)-7s %(name)s: %(message)s")
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if profile:
        Profiler.start()
    return logger
