import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from mapguide.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def format_extra(extra: Optional[dict]) -> str:
    """Render context as ``key=value`` pairs in insertion order."""
    if not extra:
        return ""
    return " ".join(f"{key}={value}" for key, value in extra.items())


class LoggerConfig:
    """
    Named engine logger writing to a rotating file and the console.

    Every module logs through the shared ``logs`` instance so request
    slots, resolvers and routes land in one file. Records still propagate,
    so test capture and uvicorn's root configuration see them too.
    """
    def __init__(
        self,
        level: int = logging.INFO,
        logger_name: str = "MAP-ENGINE",
        log_directory: str = "logs",
        log_file: str = "mapguide.log",
        max_bytes: int = 10 * 1024 * 1024,
        backups: int = 5,
    ):
        self.level = level
        self.log_file_path = os.path.join(os.path.abspath(log_directory), log_file)
        self.max_bytes = max_bytes
        self.backups = backups
        self.logger = logging.getLogger(logger_name)
        self.logger.setLevel(level)
        # Re-imports in the same process must not stack handlers
        if not self.logger.handlers:
            for handler in self._handlers():
                self.logger.addHandler(handler)

    def _handlers(self) -> list:
        formatter = logging.Formatter(LOG_FORMAT)
        console = logging.StreamHandler()
        handlers = [console]
        try:
            os.makedirs(os.path.dirname(self.log_file_path), exist_ok=True)
            handlers.append(RotatingFileHandler(
                self.log_file_path, maxBytes=self.max_bytes, backupCount=self.backups, encoding="utf-8"
            ))
        except OSError as e:
            print(f"Logging to console only, cannot open {self.log_file_path}: {str(e)}")
        for handler in handlers:
            handler.setLevel(self.level)
            handler.setFormatter(formatter)
        return handlers

    def log(self, level: int, message: str, extra: Optional[dict] = None):
        context = format_extra(extra)
        self.logger.log(level, f"{message} | {context}" if context else message)

logs = LoggerConfig(
    level=settings.LOGGER,
    logger_name="MAP-ENGINE",
    log_directory=settings.LOG_DIRECTORY,
    log_file=settings.LOG_FILE,
    max_bytes=settings.LOG_MAX_BYTES,
    backups=settings.LOG_BACKUPS,
)
