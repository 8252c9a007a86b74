import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from autoconnect.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"


def setup_logging(logs_dir: Optional[Path] = None) -> logging.Logger:
    """
    Configure dual logging: console (INFO) and daily log file (DEBUG).
    """
    logs_dir = logs_dir or settings.logs_dir
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_filename = logs_dir / f"autoconnect_{datetime.now().strftime('%Y-%m-%d')}.log"

    logger = logging.getLogger("autoconnect")
    logger.setLevel(logging.DEBUG)

    # Avoid adding duplicate handlers on re-runs
    if logger.handlers:
        return logger

    # File handler: captures everything (DEBUG and above)
    fh = logging.FileHandler(log_filename, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(LOG_FORMAT))

    # Console handler: user-facing output (INFO and above)
    ch = logging.StreamHandler()
    ch.setLevel(logging.INFO)
    ch.setFormatter(logging.Formatter(LOG_FORMAT))

    logger.addHandler(fh)
    logger.addHandler(ch)
    return logger
