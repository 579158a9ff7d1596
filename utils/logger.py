import logging
import os
import uuid
import gzip
import shutil
from pathlib import Path
from logging.handlers import TimedRotatingFileHandler
from time import perf_counter


# Shared by every logger created in this process
PROCESS_RUN_ID = str(uuid.uuid4())

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | run_id=%(run_id)s | "
    "%(filename)s:%(lineno)d | %(message)s"
)


# ----------------------------------------------------------------------
# Custom Filters
# ----------------------------------------------------------------------
class CorrelationFilter(logging.Filter):
    """Attach the process run ID to every log record."""

    def __init__(self, run_id: str):
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = self.run_id
        return True


# ----------------------------------------------------------------------
# Log rotation with gzip compression
# ----------------------------------------------------------------------
def _rotator(source, dest):
    with open(source, "rb") as sf, gzip.open(dest + ".gz", "wb") as df:
        shutil.copyfileobj(sf, df)
    Path(source).unlink()


def _log_dir() -> Path:
    return Path(os.getenv("IPRANGE_LOG_DIR", "logs"))


# ----------------------------------------------------------------------
# Logger Setup
# ----------------------------------------------------------------------
def get_logger(
    name: str,
    log_level: str = "INFO",
    log_file: str = "app.log",
    run_id: str = None,
    retention_days: int = 14,
) -> logging.Logger:
    """
    Create or retrieve a component logger:
    - Console + rotating file (daily, gzip, retain N days)
    - run_id stamped on every record

    Calling it again for the same name only adjusts the level.
    """

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    if logger.handlers:
        return logger

    log_dir = _log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    corr_filter = CorrelationFilter(run_id or PROCESS_RUN_ID)
    fmt = logging.Formatter(LOG_FORMAT)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG)
    ch.setFormatter(fmt)
    ch.addFilter(corr_filter)

    fh = TimedRotatingFileHandler(
        log_dir / log_file, when="midnight", backupCount=retention_days, encoding="utf-8"
    )
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(fmt)
    fh.rotator = _rotator
    fh.addFilter(corr_filter)

    logger.addHandler(ch)
    logger.addHandler(fh)
    return logger


# ----------------------------------------------------------------------
# Metrics Logging Helper
# ----------------------------------------------------------------------
def log_metric(logger: logging.Logger, name: str, value, **labels):
    """Log a structured metric in a consistent format."""
    label_str = " ".join(f"{k}={v}" for k, v in labels.items())
    logger.info("METRIC | %s=%s %s", name, value, label_str)


# ----------------------------------------------------------------------
# Stage Timing Context Manager
# ----------------------------------------------------------------------
class log_stage:
    """Context manager timing one stage of a request."""

    def __init__(self, logger: logging.Logger, stage: str):
        self.logger = logger
        self.stage = stage

    def __enter__(self):
        self.start = perf_counter()
        self.logger.debug("Stage '%s' started", self.stage)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = perf_counter() - self.start
        if exc_type is None:
            self.logger.debug("Stage '%s' completed in %.3fs", self.stage, self.duration)
        else:
            self.logger.warning(
                "Stage '%s' failed after %.3fs: %s", self.stage, self.duration, exc_val
            )
        return False
