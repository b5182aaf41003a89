"""Logging configuration for devhooks with log rotation.

Hooks run as short-lived processes whose stdout is read by the host, so
every component logs to a rotating file instead of the console by default.

Log Rotation Policy:
- Max file size: 10 MB per log file
- Backup count: 5 (keeps devhooks.log, devhooks.log.1, ..., devhooks.log.5)
- Total max disk usage: ~60 MB for logs
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_DIR = "~/.devhooks/logs"
DEFAULT_LOG_FILE = "devhooks.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10 MB per file
DEFAULT_BACKUP_COUNT = 5
DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def configure_logging(
    log_dir: str | None = None,
    log_file: str = DEFAULT_LOG_FILE,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    log_level: int | str | None = None,
    log_format: str = DEFAULT_LOG_FORMAT,
    console_output: bool = False,
) -> logging.Logger:
    """Configure devhooks logging with automatic log rotation.

    Args:
        log_dir: Directory for log files (default: $DEVHOOKS_LOG_DIR or ~/.devhooks/logs)
        log_file: Log file name (default: devhooks.log)
        max_bytes: Maximum size per log file before rotation (default: 10 MB)
        backup_count: Number of backup files to keep (default: 5)
        log_level: Logging level (default: $DEVHOOKS_LOG_LEVEL or INFO)
        log_format: Log message format
        console_output: Whether to also log to stderr (default: False)

    Returns:
        The root devhooks logger instance.
    """
    global _configured

    if log_dir is None:
        log_dir = os.environ.get("DEVHOOKS_LOG_DIR", DEFAULT_LOG_DIR)
    if log_level is None:
        log_level = os.environ.get("DEVHOOKS_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    if isinstance(log_level, str):
        log_level = getattr(logging, log_level.upper(), DEFAULT_LOG_LEVEL)

    root_logger = logging.getLogger("devhooks")
    root_logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicates on reconfiguration
    root_logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    log_path = Path(os.path.expanduser(log_dir))
    try:
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
    except OSError:
        # Unwritable log dir: drop file logging, keep the hook running
        root_logger.addHandler(logging.NullHandler())
    else:
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    root_logger.propagate = False

    _configured = True

    root_logger.debug(
        f"Logging configured: dir={log_path}, "
        f"max_size={max_bytes // (1024*1024)}MB, "
        f"backups={backup_count}"
    )

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a devhooks component.

    Args:
        name: Component name (e.g., 'edit_tracker', 'build_verifier')

    Returns:
        A logger instance under the devhooks namespace.

    Example:
        logger = get_logger("edit_tracker")
        logger.info("Recorded edit")
        # Logs as: devhooks.edit_tracker - INFO - Recorded edit
    """
    if not _configured:
        configure_logging()

    return logging.getLogger(f"devhooks.{name}")


def set_log_level(level: int | str) -> None:
    """Change the log level for all devhooks loggers."""
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    root_logger = logging.getLogger("devhooks")
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.setLevel(level)


def cleanup_old_logs(log_dir: str = DEFAULT_LOG_DIR, keep_days: int = 30) -> int:
    """Delete log files older than keep_days. Returns the number deleted."""
    import time

    log_path = Path(os.path.expanduser(log_dir))
    if not log_path.exists():
        return 0

    cutoff_time = time.time() - (keep_days * 24 * 60 * 60)
    deleted = 0

    for log_file in log_path.glob("*.log*"):
        if log_file.stat().st_mtime < cutoff_time:
            log_file.unlink()
            deleted += 1

    return deleted
