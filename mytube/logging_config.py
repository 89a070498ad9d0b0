from __future__ import annotations

import logging
import re
import sys
from pathlib import Path
from typing import Literal

import structlog
from structlog.typing import EventDict, Processor

from mytube.config import AppSettings

ROOT_LOGGER_NAME = "mytube"
TELEMETRY_LOGGER_NAME = "mytube.telemetry"
TELEMETRY_LOG_FILE_NAME = "mytube-telemetry.log"

LogComponent = Literal["server", "cli"]

_BEARER_PATTERN = re.compile(r"(Bearer\s+)[^\s\"',]+", re.IGNORECASE)
_API_TOKEN_PATTERN = re.compile(r"\bkey_[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+")


def log_file_name(component: LogComponent) -> str:
    return f"mytube-{component}.log"


def configure_application_logging(
    settings: AppSettings,
    *,
    component: LogComponent = "server",
) -> Path:
    """Route `mytube.*` loggers to a JSON file, plus the console for the server.

    The CLI prints its own output through rich, so its records only go to
    `mytube-cli.log`. Telemetry always lands in its own file.
    """
    log_dir = settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / log_file_name(component)
    telemetry_log_file = log_dir / TELEMETRY_LOG_FILE_NAME

    _configure_structlog()

    logger = _claim_logger(ROOT_LOGGER_NAME, level=logging.DEBUG)
    logger.addHandler(_file_handler(log_file, level=logging.DEBUG, component=component))
    console_level = "OFF"
    if component == "server":
        console_level = settings.log_level.strip().upper()
        logger.addHandler(_console_handler(_resolve_log_level(settings.log_level)))

    telemetry_logger = _claim_logger(TELEMETRY_LOGGER_NAME, level=logging.INFO)
    telemetry_logger.addHandler(
        _file_handler(telemetry_log_file, level=logging.INFO, component=component)
    )

    logger.info(
        "logging configured component=%s console_level=%s path=%s telemetry_path=%s",
        component,
        console_level,
        log_file,
        telemetry_log_file,
    )
    return log_file


def _resolve_log_level(raw_level: str) -> int:
    resolved = logging.getLevelName(raw_level.strip().upper())
    if isinstance(resolved, int):
        return resolved
    return logging.INFO


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _claim_logger(name: str, *, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    return logger


def _file_handler(path: Path, *, level: int, component: LogComponent) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain(component),
            processors=[
                _add_source_location,
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                _scrub_credentials,
                structlog.processors.JSONRenderer(sort_keys=True),
            ],
        )
    )
    return handler


def _console_handler(level: int) -> logging.Handler:
    stream = sys.stdout
    handler = logging.StreamHandler(stream=stream)
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_pre_chain("server"),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _scrub_credentials,
                structlog.dev.ConsoleRenderer(colors=_stream_supports_color(stream)),
            ],
        )
    )
    return handler


def _pre_chain(component: LogComponent) -> list[Processor]:
    def _add_component(
        _logger: logging.Logger,
        _method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict.setdefault("component", component)
        return event_dict

    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        _add_component,
    ]


def _add_source_location(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    record = event_dict.get("_record")
    if isinstance(record, logging.LogRecord):
        event_dict["pathname"] = record.pathname
        event_dict["lineno"] = record.lineno
        event_dict["func_name"] = record.funcName
    return event_dict


def _scrub_credentials(
    _logger: logging.Logger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Mask bearer headers and `key_<id>.<secret>` tokens in string values."""
    for key, value in event_dict.items():
        if isinstance(value, str):
            masked = _BEARER_PATTERN.sub(r"\1[redacted]", value)
            event_dict[key] = _API_TOKEN_PATTERN.sub("[redacted]", masked)
    return event_dict


def _stream_supports_color(stream: object) -> bool:
    isatty = getattr(stream, "isatty", None)
    if not callable(isatty):
        return False
    try:
        return bool(isatty())
    except (OSError, ValueError):
        return False
