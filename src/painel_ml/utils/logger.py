"""
Logging configuration for Painel ML.

Console output is colorized with colorlog, file output rotates under LOG_DIR.
Behaviour is driven by the LOG_LEVEL, LOG_DIR and DEBUG_MODE environment
variables.
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Optional

import colorlog


LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


class PainelLogger:
    """Configures a named logger with console and rotating file handlers."""

    def __init__(self, name: str = "painel_ml"):
        self.name = name
        self.logger = logging.getLogger(name)
        self._setup_logger()

    def _setup_logger(self) -> None:
        log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        log_dir = os.getenv("LOG_DIR", "./logs")
        debug_mode = os.getenv("DEBUG_MODE", "false").lower() == "true"

        Path(log_dir).mkdir(parents=True, exist_ok=True)

        self.logger.setLevel(getattr(logging, log_level, logging.INFO))
        self.logger.handlers.clear()

        self._setup_console_handler(debug_mode)
        self._setup_file_handler(log_dir, debug_mode)

        self.logger.propagate = False

    def _setup_console_handler(self, debug_mode: bool) -> None:
        console_handler = colorlog.StreamHandler(sys.stdout)

        if debug_mode:
            color_format = (
                "%(log_color)s%(asctime)s [%(levelname)8s] "
                "%(name)s.%(funcName)s:%(lineno)d - %(message)s"
            )
        else:
            color_format = (
                "%(log_color)s%(asctime)s [%(levelname)8s] "
                "%(name)s - %(message)s"
            )

        formatter = colorlog.ColoredFormatter(
            color_format,
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors=LOG_COLORS,
        )
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

    def _setup_file_handler(self, log_dir: str, debug_mode: bool) -> None:
        # One file per top-level package keeps module loggers together
        log_file = os.path.join(log_dir, f"{self.name.split('.')[0]}.log")

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding='utf-8'
        )

        if debug_mode:
            file_format = (
                "%(asctime)s [%(levelname)8s] %(name)s.%(funcName)s:%(lineno)d - "
                "%(message)s"
            )
        else:
            file_format = "%(asctime)s [%(levelname)8s] %(name)s - %(message)s"

        file_handler.setFormatter(logging.Formatter(file_format, datefmt="%Y-%m-%d %H:%M:%S"))
        self.logger.addHandler(file_handler)

    def get_logger(self) -> logging.Logger:
        return self.logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger.

    Args:
        name: Logger name. Defaults to the caller's module name.

    Returns:
        Logger with console and file handlers attached.
    """
    if name is None:
        frame = sys._getframe(1)
        name = frame.f_globals.get('__name__', 'painel_ml')

    return PainelLogger(name).get_logger()


def setup_logging() -> None:
    """Initialize application-wide logging. Call once at startup."""
    logger = PainelLogger("painel_ml").get_logger()
    logger.info("Logging system initialized")
    logger.debug(f"Log level: {logger.level}")
    logger.debug(f"Handlers: {[h.__class__.__name__ for h in logger.handlers]}")
