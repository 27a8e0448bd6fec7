"""Centralized logging configuration for the client components."""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from complaintdesk import config


class ServiceLogger:
    """Logger for client components that also keeps the viewer notice feed.

    Every entry is written to the stdlib logger and appended to an in-memory
    buffer, so a view can show the failures it was told about without
    re-reading log files.
    """

    def __init__(self, component: str, max_buffer_size: int = 100):
        self.component = component
        self.logger = logging.getLogger(f"complaintdesk.{component}")
        self.logger.setLevel(logging.DEBUG)

        # Handlers are per logger name; a second instance must not duplicate them
        if not self.logger.handlers:
            formatter = logging.Formatter(
                '%(asctime)s | %(name)s | %(levelname)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )

            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(config.LOG_LEVEL)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

            if config.LOG_DIR:
                log_dir = Path(config.LOG_DIR)
                log_dir.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_dir / f"{component}.log")
                file_handler.setLevel(logging.DEBUG)
                file_handler.setFormatter(formatter)
                self.logger.addHandler(file_handler)

        self.log_buffer = []
        self.max_buffer_size = max_buffer_size

    def _add_to_buffer(self, level: str, message: str, extra: Optional[dict] = None):
        entry = {
            "timestamp": datetime.now().isoformat(),
            "level": level,
            "component": self.component,
            "message": message,
            "extra": extra or {}
        }
        self.log_buffer.append(entry)
        if len(self.log_buffer) > self.max_buffer_size:
            self.log_buffer.pop(0)

    def debug(self, message: str, **kwargs):
        self.logger.debug(message)
        self._add_to_buffer("DEBUG", message, kwargs)

    def info(self, message: str, **kwargs):
        self.logger.info(message)
        self._add_to_buffer("INFO", message, kwargs)

    def warning(self, message: str, **kwargs):
        self.logger.warning(message)
        self._add_to_buffer("WARNING", message, kwargs)

    def error(self, message: str, **kwargs):
        self.logger.error(message)
        self._add_to_buffer("ERROR", message, kwargs)

    def get_recent_logs(self, limit: int = 50, min_level: str = "DEBUG"):
        """Get recent entries at or above ``min_level``, oldest first."""
        threshold = logging.getLevelName(min_level)
        entries = [e for e in self.log_buffer if logging.getLevelName(e["level"]) >= threshold]
        return entries[-limit:]

    def clear_logs(self):
        self.log_buffer = []
