# logging_config.py
# =============================================================================
# Structured Logging for antclock
# =============================================================================
#
# One JSON object per record. Fields passed as extra={"extra_data": {...}}
# are merged into the top level of the record.

import logging
import json
import time
from datetime import datetime, timezone

import numpy as np

COMPONENTS = ('stepper', 'driver', 'conservation', 'invariants', 'receipts', 'policy')


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, 'extra_data'):
            log_entry.update(record.extra_data)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # numpy scalars and enums fall back to str
        return json.dumps(log_entry, default=str)


def setup_logging(level=logging.INFO, log_file=None):
    """Route the antclock component loggers to stderr (and optionally a file) as JSON."""
    logger = logging.getLogger('antclock')
    logger.setLevel(level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = JSONFormatter()
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        logger.addHandler(handler)

    for comp in COMPONENTS:
        logging.getLogger(f'antclock.{comp}').setLevel(level)

    return logger


class Timer:
    """Wall-clock span of a with-block, read after it closes."""

    def __enter__(self):
        self.start = time.perf_counter()
        self.end = None
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end = time.perf_counter()

    def elapsed_ms(self):
        end = self.end if self.end is not None else time.perf_counter()
        return (end - self.start) * 1000


def array_stats(arr):
    """Range of the finite entries and whether any entry is NaN/inf."""
    arr = np.asarray(arr, dtype=np.float64)
    finite = np.isfinite(arr)
    if not finite.any():
        return {"min": None, "max": None, "finite": False}
    return {
        "min": float(arr[finite].min()),
        "max": float(arr[finite].max()),
        "finite": bool(finite.all()),
    }
