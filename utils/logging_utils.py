"""
Logging utilities for the upload backend.

Configures the root logger once and provides timestamped, thread-safe
console output for lifecycle messages.
"""

import logging
import sys
import threading
from datetime import datetime

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-28s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Global print lock for thread-safe printing
_print_lock = threading.Lock()


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach a console handler to the root logger.

    Safe to call more than once; the handler is only added the first time.

    Args:
        level: Log level name, e.g. "DEBUG" or "INFO"
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if not any(getattr(h, "_upload_backend", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler._upload_backend = True
        root.addHandler(handler)

    return root


def thread_safe_print(message: str, lock: threading.Lock = None):
    """
    Thread-safe printing function with timestamp.

    Args:
        message: The message to print
        lock: Optional lock to use. If None, uses the global print lock.
    """
    if lock is None:
        lock = _print_lock

    with lock:
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]  # Include milliseconds
        print(f"[{timestamp}] {message}")
