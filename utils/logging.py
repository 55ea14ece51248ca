"""Logging utilities.

Entry points call `configure_logging()` once, before anything logs. Library
modules only ever use `logging.getLogger(__name__)`.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import List

MAX_LOG_FILES_DEFAULT = 10
LOG_FORMAT = "%(asctime)s (%(levelname)s) | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_log_level(level: str | None = None) -> int:
    """Map a level name (or LOG_LEVEL) to a logging constant; unknown names give INFO."""
    name = (level or os.getenv("LOG_LEVEL") or "INFO").strip().upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def _prune_log_files(log_dir: Path, service_name: str, keep: int) -> None:
    """Delete all but the `keep` newest log files of a service."""
    candidates = sorted(
        log_dir.glob(f"{service_name}_*.log"),
        key=lambda path: path.stat().st_mtime,
        reverse=True,
    )
    for stale in candidates[keep:]:
        stale.unlink(missing_ok=True)


def _new_log_file(log_dir: Path, service_name: str, max_log_files: int) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    # The file about to be created counts towards the limit
    _prune_log_files(log_dir, service_name, max(max_log_files - 1, 0))
    return log_dir / f"{service_name}_{datetime.now():%Y%m%d_%H%M%S}.log"


def configure_logging(
    *,
    service_name: str,
    level: str | None = None,
    log_dir: str | None = None,
    max_log_files: int = MAX_LOG_FILES_DEFAULT,
) -> logging.Logger:
    """Send root logging to the console and to a per-run file.

    Args:
        service_name: Name of the service, used as logger name and file prefix.
        level: Log level name (defaults to LOG_LEVEL env var or INFO).
        log_dir: Directory for log files (defaults to LOG_DIR env var or 'logs').
        max_log_files: Number of this service's log files to retain.

    Returns:
        Logger named after the service.
    """
    log_level = resolve_log_level(level)
    log_file = _new_log_file(Path(log_dir or os.getenv("LOG_DIR") or "logs"), service_name, max_log_files)

    handlers: List[logging.Handler] = [
        logging.StreamHandler(),
        logging.FileHandler(log_file, encoding="utf-8"),
    ]
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    # Replace rather than stack handlers on reconfiguration
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    return logging.getLogger(service_name)
