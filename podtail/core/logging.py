"""Diagnostic logging setup and configuration for podtail.

Diagnostics always go to stderr (or a file): stdout carries the
multiplexed pod logs and must stay clean.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import structlog
from structlog.stdlib import LoggerFactory

from .config import Config, LoggingConfig


class StructuredLogger:
    """Centralized logging configuration with structured logging support."""

    def __init__(self) -> None:
        self._configured: bool = False

    def configure(self, config: Optional[LoggingConfig] = None) -> None:
        """Configure the logging system with the provided configuration.

        Args:
            config: Logging configuration. If None, uses default configuration.
        """
        if self._configured:
            return

        if config is None:
            config = LoggingConfig()  # type: ignore[call-arg]

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.dev.set_exc_info,
                structlog.processors.TimeStamper(fmt="ISO"),
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=True,
        )

        log_level = getattr(logging, config.level)
        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        # Clear existing handlers to avoid duplicates
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        pre_chain = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
        ]

        if config.console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(log_level)
            console_handler.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    processor=structlog.dev.ConsoleRenderer(
                        colors=hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
                    ),
                    foreign_pre_chain=pre_chain,
                )
            )
            root_logger.addHandler(console_handler)

        if config.file:
            log_file = Path(config.file).expanduser().resolve()
            log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=log_file,
                maxBytes=config.max_size * 1024 * 1024,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(
                structlog.stdlib.ProcessorFormatter(
                    processor=structlog.processors.JSONRenderer(),
                    foreign_pre_chain=pre_chain,
                )
            )
            root_logger.addHandler(file_handler)

        # The kubernetes client logs every request at DEBUG
        logging.getLogger("kubernetes").setLevel(max(log_level, logging.INFO))
        logging.getLogger("urllib3").setLevel(max(log_level, logging.WARNING))

        self._configured = True

    def reconfigure(self, config: LoggingConfig) -> None:
        """Reconfigure the logging system with new settings."""
        self._configured = False
        self.configure(config)

    def is_configured(self) -> bool:
        """Check if the logger has been configured."""
        return self._configured


_logger_instance: Optional[StructuredLogger] = None


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given name.

    Args:
        name: Logger name, typically __name__ from the calling module.

    Example:
        >>> from podtail.core.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("pod discovered", pod="api-7f9")
    """
    global _logger_instance

    if _logger_instance is None:
        _logger_instance = StructuredLogger()
        _logger_instance.configure()

    return structlog.get_logger(name)


def setup_logging(config: Config) -> StructuredLogger:
    """Set up diagnostic logging from configuration.

    ``verbose`` forces the DEBUG level regardless of ``logging.level``.
    """
    global _logger_instance

    logging_config = config.logging
    if config.verbose:
        logging_config = logging_config.model_copy(update={"level": "DEBUG"})

    if _logger_instance is None:
        _logger_instance = StructuredLogger()
    _logger_instance.reconfigure(logging_config)

    structlog.contextvars.bind_contextvars(application="podtail")
    return _logger_instance
