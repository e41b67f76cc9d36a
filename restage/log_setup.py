"""Centralised logging configuration.

Call configure() once at startup (from cli.py).
All modules then use logging.getLogger(__name__) normally.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

_CONSOLE_FMT = "%(asctime)s  %(levelname)-7s  %(name)s - %(message)s"
_FILE_FMT = "%(asctime)s  %(levelname)-7s  %(name)-20s  %(filename)s:%(lineno)d - %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"


def configure(level: str = "WARNING", log_file: Optional[Path] = None) -> None:
    """Set up console (and optional rotating file) handlers.  Safe to call multiple times."""
    root = logging.getLogger()
    if root.handlers:
        return  # Already configured

    root.setLevel(logging.DEBUG)  # handlers apply their own levels

    ch = logging.StreamHandler()
    ch.setLevel(getattr(logging, level.upper(), logging.WARNING))
    ch.setFormatter(logging.Formatter(_CONSOLE_FMT, datefmt=_DATE_FMT))
    root.addHandler(ch)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,   # 5 MB
            backupCount=5,
            encoding="utf-8",
        )
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FILE_FMT, datefmt=_DATE_FMT))
        root.addHandler(fh)

    # Quieten noisy third-party loggers
    for noisy in ("urllib3", "httpx", "httpcore", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
