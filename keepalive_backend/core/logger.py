"""
Unified logging system
Console output plus rotating service and error logs, configured from the [logging] section
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from keepalive_backend.config.loader import get_config, get_config_dir

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
FILE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
)

_SIZE_UNITS = {"KB": 1024, "MB": 1024**2, "GB": 1024**3}

# Third-party loggers kept at WARNING
_QUIET_LOGGERS = ("uvicorn.access", "asyncio")


class LoggerManager:
    """Log manager"""

    def __init__(self):
        self._loggers: dict = {}
        self._setup_root_logger()

    def _setup_root_logger(self):
        """Setup root logger"""
        config = get_config()

        log_level = str(config.get("logging.level", "INFO")).upper()
        logs_dir = Path(config.get("logging.logs_dir", str(get_config_dir() / "logs")))
        max_bytes = self._parse_size(config.get("logging.max_file_size", "10MB"))
        backup_count = int(config.get("logging.backup_count", 5))

        logs_dir.mkdir(parents=True, exist_ok=True)

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, log_level, logging.INFO))
        root_logger.handlers.clear()

        if config.get("logging.console", True):
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
            root_logger.addHandler(console_handler)

        file_format = logging.Formatter(FILE_FORMAT)
        root_logger.addHandler(
            self._rotating_handler(
                logs_dir / "keepalive_backend.log", logging.DEBUG, file_format, max_bytes, backup_count
            )
        )
        root_logger.addHandler(
            self._rotating_handler(
                logs_dir / "error.log", logging.ERROR, file_format, max_bytes, backup_count
            )
        )

        for name in _QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    @staticmethod
    def _rotating_handler(
        path: Path,
        level: int,
        formatter: logging.Formatter,
        max_bytes: int,
        backup_count: int,
    ) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        handler.setLevel(level)
        handler.setFormatter(formatter)
        return handler

    @staticmethod
    def _parse_size(size: object) -> int:
        """Parse a file size such as "10MB" into bytes"""
        text = str(size).strip().upper()
        for unit, factor in _SIZE_UNITS.items():
            if text.endswith(unit):
                return int(float(text[: -len(unit)]) * factor)
        return int(text)

    def get_logger(self, name: str) -> logging.Logger:
        """Get logger with specified name"""
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)
        return self._loggers[name]


# Global log manager instance (lazy initialization to avoid circular imports)
_logger_manager: Optional[LoggerManager] = None


def get_logger(name: str) -> logging.Logger:
    """Convenience function to get logger"""
    global _logger_manager

    if _logger_manager is None:
        _logger_manager = LoggerManager()

    return _logger_manager.get_logger(name)


def setup_logging():
    """Setup logging system (for initialization)"""
    global _logger_manager

    if _logger_manager is None:
        _logger_manager = LoggerManager()
    else:
        _logger_manager._setup_root_logger()
