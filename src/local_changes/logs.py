"""
logs.py - Structured logging for local_changes.

Provides:
- JSON log formatting
- Event helpers for installation and provisioning
- One-call logging configuration
"""

import json
import logging


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    _RESERVED = frozenset((
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'pathname', 'process', 'processName', 'relativeCreated',
        'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
        'message', 'taskName'
    ))

    def __init__(self, include_extra: bool = True):
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            for key, value in record.__dict__.items():
                if key not in self._RESERVED:
                    log_data[key] = value

        return json.dumps(log_data, default=str)


class TrackingLogger:
    """
    Structured logger for tracking administration.

    Provides convenience methods for installer events.
    """

    def __init__(self, name: str = "local_changes"):
        self._logger = logging.getLogger(name)

    def tracking_installed(self, table_name: str, tracked_columns: list[str]) -> None:
        self._logger.info(
            f"Tracking installed on {table_name}",
            extra={
                "event": "tracking_installed",
                "table_name": table_name,
                "tracked_columns": tracked_columns,
            }
        )

    def tracking_removed(self, table_name: str) -> None:
        self._logger.info(
            f"Tracking removed from {table_name}",
            extra={
                "event": "tracking_removed",
                "table_name": table_name,
            }
        )

    def tracking_failed(self, table_name: str, error: str) -> None:
        self._logger.error(
            f"Tracking installation failed on {table_name}: {error}",
            extra={
                "event": "tracking_failed",
                "table_name": table_name,
                "error": error,
            }
        )

    def schema_ensured(self, tables: list[str]) -> None:
        self._logger.debug(
            "Tracking schema ensured",
            extra={
                "event": "schema_ensured",
                "tables": tables,
            }
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: str | None = None
) -> None:
    """
    Configure logging for production.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON formatting
        log_file: Optional log file path
    """
    handlers = []

    console = logging.StreamHandler()
    if json_format:
        console.setFormatter(JSONFormatter())
    else:
        console.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
    handlers.append(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        handlers=handlers
    )
