from __future__ import annotations

import logging
import sys
from pathlib import Path

import structlog
from structlog.typing import Processor

from backend.app.config import AppSettings
from backend.app.telemetry import TELEMETRY_LOGGER_NAME

ROOT_LOGGER_NAME = "movie_service"
LOG_FILE_NAME = "movie-service.log"
TELEMETRY_LOG_FILE_NAME = "movie-service-telemetry.log"

_PRE_CHAIN: tuple[Processor, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
)


def configure_application_logging(settings: AppSettings) -> Path:
    """Route `movie_service.*` records to stdout and a JSON file.

    Telemetry events get their own JSON file and never reach the console.
    Calling this again (one app per test) replaces the previous handlers.
    """
    settings.log_dir.mkdir(parents=True, exist_ok=True)
    log_file = settings.log_dir / LOG_FILE_NAME
    telemetry_log_file = settings.log_dir / TELEMETRY_LOG_FILE_NAME

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            *_PRE_CHAIN,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(stream=sys.stdout)
    console_handler.setLevel(_resolve_log_level(settings.log_level))
    console_handler.setFormatter(
        _formatter(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    )

    _install_handlers(
        ROOT_LOGGER_NAME,
        logging.DEBUG,
        console_handler,
        _json_file_handler(log_file, logging.DEBUG),
    )
    _install_handlers(
        TELEMETRY_LOGGER_NAME,
        logging.INFO,
        _json_file_handler(telemetry_log_file, logging.INFO),
    )

    logging.getLogger(ROOT_LOGGER_NAME).info(
        "logging configured console_level=%s path=%s telemetry_path=%s",
        settings.log_level.upper(),
        log_file,
        telemetry_log_file,
    )
    return log_file


def _resolve_log_level(raw_level: str) -> int:
    resolved = logging.getLevelName(raw_level.strip().upper())
    if isinstance(resolved, int):
        return resolved
    return logging.INFO


def _install_handlers(logger_name: str, level: int, *handlers: logging.Handler) -> None:
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)


def _json_file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(
        _formatter(
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        )
    )
    return handler


def _formatter(*renderers: Processor) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=list(_PRE_CHAIN),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )
