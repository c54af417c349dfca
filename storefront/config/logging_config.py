# storefront/config/logging_config.py

"""Per-run logging for the storefront CLI.

One file per launch, ``run_YYYYmmdd_HHMMSS.log`` under ``Settings.LOGS_DIR``,
receives DEBUG and up from every ``storefront.*`` logger: catalog requests
and retries (``storefront.client``), paging sessions and stale-response
discards (``storefront.paginator``), cache loads and invalidations
(``storefront.cache``), store writes, bus deliveries and filter changes.
Only warnings and errors reach stderr, so JSON on stdout stays clean.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

from storefront.config.settings import Settings

LOGGER_NAME = "storefront"

_FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s | "
    "%(funcName)s:%(lineno)d | %(message)s"
)
_STDERR_FORMAT = "%(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(logs_dir: Path | None = None) -> Path:
    """Attach the per-run file and stderr handlers to ``storefront``.

    Args:
        logs_dir: Directory for the run log; ``Settings.LOGS_DIR`` when
            omitted.

    Returns:
        Path of this run's log file.  A second call reuses the handlers
        already installed and only computes the path.
    """
    target_dir = logs_dir or Settings.LOGS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = target_dir / f"run_{stamp}.log"

    project_logger = logging.getLogger(LOGGER_NAME)
    project_logger.setLevel(logging.DEBUG)
    if project_logger.handlers:
        return log_file

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(_FILE_FORMAT, datefmt=_DATE_FORMAT)
    )

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(logging.Formatter(_STDERR_FORMAT))

    project_logger.addHandler(file_handler)
    project_logger.addHandler(stderr_handler)
    project_logger.info(
        "Logging to %s (catalog %s)", log_file, Settings.CATALOG_API_URL
    )
    return log_file
