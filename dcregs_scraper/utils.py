import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FILE_PATH = "dcregs_scraper.log"


def setup_logging(verbose: bool = False, log_file: Optional[str] = LOG_FILE_PATH) -> None:
    """Configure root logging with console and (optionally) rotating file handlers."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger()
    logger.setLevel(level)

    # Replace handlers on repeat calls; file handlers own a descriptor
    for h in list(logger.handlers):
        logger.removeHandler(h)
        if isinstance(h, logging.FileHandler):
            h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s - %(levelname)s - %(name)s - %(message)s"
    )

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    # Serverless filesystems are often read-only; pass log_file=None there.
    if log_file:
        fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3)
        fh.setLevel(level)
        fh.setFormatter(fmt)
        logger.addHandler(fh)
