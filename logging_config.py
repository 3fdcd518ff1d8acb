"""
Logging configuration for the Prismic migration CLI

Two sinks:
    - console (stderr): short human-readable lines
    - rotating file: one JSON object per record, including the structured
      context passed by the stage that logged it
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any

from config import (
    LOG_LEVEL,
    LOG_FILE,
    LOG_DIR,
    LOG_ROTATION_SIZE,
    LOG_BACKUP_COUNT,
    PROGRESS_LOG_STEPS,
)


class StructuredFormatter(logging.Formatter):
    """Render a record and its ``structured`` extra as a JSON line"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        structured = getattr(record, "structured", None)
        if structured:
            entry["context"] = structured
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class OperationLogger:
    """Logger for pipeline stages with structured context"""

    def __init__(self, name: str = "prismic_migrate", log_dir: Optional[Path] = None):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, LOG_LEVEL.upper(), logging.INFO))
        self.log_dir = Path(log_dir) if log_dir else LOG_DIR

        if not self.logger.handlers:
            self._setup_handlers()

    def _setup_handlers(self):
        self.log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            self.log_dir / LOG_FILE,
            maxBytes=LOG_ROTATION_SIZE,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter())

        # stdout carries the JSON stage payloads
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(logging.Formatter("%(levelname)s - %(message)s"))

        self.logger.addHandler(file_handler)
        self.logger.addHandler(console_handler)

    def _log(self, level: int, message: str, context: Dict[str, Any], exc_info: bool = False):
        self.logger.log(level, message, extra={"structured": context}, exc_info=exc_info)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, kwargs)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, kwargs)

    def log_operation_start(self, operation: str, **kwargs):
        """Mark the start of a stage; kwargs describe its input"""
        self._log(logging.INFO, f"Starting {operation}", {"operation": operation, "input": kwargs})

    def log_operation_end(self, operation: str, success: bool, **kwargs):
        """Mark the end of a stage; a failed stage logs at ERROR"""
        self._log(
            logging.INFO if success else logging.ERROR,
            f"Completed {operation} - {'SUCCESS' if success else 'FAILED'}",
            {"operation": operation, "success": success, "results": kwargs},
        )

    def log_batch_progress(self, operation: str, current: int, total: int, **kwargs):
        """
        Per-item progress. Every item is written to the file; the console
        only sees roughly PROGRESS_LOG_STEPS updates per batch.
        """
        progress = (current / total) * 100 if total > 0 else 0
        step = max(1, total // PROGRESS_LOG_STEPS) if total > 0 else 1
        level = logging.INFO if current == total or current % step == 0 else logging.DEBUG
        self._log(
            level,
            f"{operation}: {current}/{total} ({progress:.1f}%)",
            {"operation": operation, "current": current, "total": total, **kwargs},
        )

    def log_api_call(
        self,
        method: str,
        url: str,
        status_code: Optional[int] = None,
        response_time: Optional[float] = None,
        **kwargs,
    ):
        """Record one HTTP call; error statuses are logged as warnings"""
        context = {
            "method": method,
            "url": url,
            "status_code": status_code,
            "response_time_ms": round(response_time * 1000, 1) if response_time else None,
            **kwargs,
        }
        level = logging.WARNING if status_code and status_code >= 400 else logging.DEBUG
        suffix = f" - {status_code}" if status_code else ""
        self._log(level, f"API {method} {url}{suffix}", context)

    def log_error(self, error: Exception, context: Optional[dict] = None):
        """Log an exception with its traceback"""
        self._log(
            logging.ERROR,
            f"Error: {type(error).__name__}: {error}",
            {"error_type": type(error).__name__, **(context or {})},
            exc_info=True,
        )


def get_logger(name: str = "prismic_migrate", log_dir: Optional[Path] = None) -> OperationLogger:
    """Get a configured logger instance"""
    return OperationLogger(name, log_dir)


# Global logger instance
logger = get_logger()
