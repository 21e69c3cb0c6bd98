"""Logging setup for castline.

Provides the record factory, context-id filter and formatters used by the
service, plus ``setup_logging`` which installs them through ``dictConfig``.
Two output formats are supported: a human-readable line format that appends
any ``extra`` fields, and JSON via python-json-logger.
"""

from collections.abc import Mapping
from contextvars import ContextVar
import copy
import json
import logging
from logging.config import dictConfig
import sys
from typing import Any, Literal

APP_LOGGER_NAME = "castline"

_original_log_record_factory = logging.getLogRecordFactory()
_context_id_var: ContextVar[str | None] = ContextVar("context_id", default=None)
_should_include_stacktrace: bool = False

# LogRecord attributes that are never treated as user-supplied extras.
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
        "context_id",
        "exc_custom_attrs",
        "semantic_trace",
        "color_message",
    }
)


def custom_record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
    """Build a LogRecord that also carries the attributes of a raised error.

    Walks the exception chain (``__cause__`` then ``__context__``) and copies
    public attributes such as ``feed_url`` or ``task_id`` onto the record, and
    keeps the chain of messages as ``semantic_trace``.

    Args:
        *args: Positional arguments for the default factory.
        **kwargs: Keyword arguments for the default factory.

    Returns:
        The enriched LogRecord.
    """
    record = _original_log_record_factory(*args, **kwargs)
    if not record.exc_info or not record.exc_info[1]:
        return record

    attrs: dict[str, Any] = {}
    chain: list[str] = []
    exc: BaseException | None = record.exc_info[1]
    while exc is not None:
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                attrs.setdefault(name, value)
        chain.append(str(exc))
        exc = exc.__cause__ or exc.__context__

    if attrs:
        record.exc_custom_attrs = attrs
    if chain:
        record.semantic_trace = chain
    return record


def set_context_id(context_id: str) -> None:
    """Tag every log record emitted in the current async context.

    Args:
        context_id: Identifier to attach, e.g. ``"worker-1718000000"``.
    """
    _context_id_var.set(context_id)


class ContextIdFilter(logging.Filter):
    """Copies the current context id onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context_id = _context_id_var.get()
        if context_id is not None:
            record.context_id = context_id
        return True


def _format_extra_value(value: Any) -> str:
    if isinstance(value, dict | list | tuple | set):
        if isinstance(value, set):
            value = sorted(value, key=str)
        return json.dumps(value, sort_keys=True, separators=(", ", ":"), default=str)
    return str(value)


class HumanReadableExtrasFormatter(logging.Formatter):
    """Line formatter that appends ``extra`` fields as ``key:value`` pairs.

    When stack traces are disabled, exceptions are rendered as their chain of
    messages instead of a full traceback.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: Literal["%", "{", "$"] = "%",
        validate: bool = True,
        *,
        defaults: Mapping[str, Any] | None = None,
    ):
        super().__init__(fmt, datefmt, style, validate, defaults=defaults)

    def format(self, record: logging.LogRecord) -> str:
        head = [self.formatTime(record, self.datefmt), record.levelname, f"[{record.name}]"]
        ctx_id = getattr(record, "context_id", None)
        if ctx_id is not None:
            head.append(f"CtxID:{ctx_id}")

        extras: dict[str, Any] = {}
        exc_attrs = getattr(record, "exc_custom_attrs", None)
        if isinstance(exc_attrs, dict):
            extras.update(exc_attrs)  # type: ignore
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                extras[key] = value

        parts = [" ".join(head)]
        if extras:
            parts.append(
                " ".join(f"{k}:{_format_extra_value(v)}" for k, v in extras.items())
            )
        message = record.getMessage()
        parts.append(f"- {message}" if message else "-")
        line = " ".join(parts)

        if record.exc_info:
            if _should_include_stacktrace:
                if not record.exc_text:
                    record.exc_text = self.formatException(record.exc_info)
                if record.exc_text:
                    line += "\n" + record.exc_text
            else:
                trace: list[str] | None = getattr(record, "semantic_trace", None)
                if trace:
                    line += f"\nError: {trace[0]}"
                    for msg in trace[1:]:
                        line += f"\n  Caused by: {msg}"

        if record.stack_info:
            line += "\n" + self.formatStack(record.stack_info)
        return line


LOGGING_CONFIG: dict[str, Any] = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "context_id_filter": {"()": ContextIdFilter},
    },
    "formatters": {
        "human_readable_formatter": {
            "()": HumanReadableExtrasFormatter,
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
        "json_formatter": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console_handler": {
            "class": "logging.StreamHandler",
            "formatter": "human_readable_formatter",
            "stream": "ext://sys.stdout",
            "filters": ["context_id_filter"],
        },
    },
    "loggers": {
        APP_LOGGER_NAME: {
            "handlers": ["console_handler"],
            "level": "INFO",
            "propagate": False,
        },
        "uvicorn.error": {
            "handlers": ["console_handler"],
            "level": "INFO",
            "propagate": False,
        },
        "uvicorn.access": {
            "handlers": ["console_handler"],
            "level": "WARNING",
            "propagate": False,
        },
        "apscheduler": {
            "handlers": ["console_handler"],
            "level": "WARNING",
            "propagate": False,
        },
    },
    "root": {
        "handlers": ["console_handler"],
        "level": "WARNING",
    },
}


def setup_logging(
    log_format_type: Literal["human", "json"],
    app_log_level_name: str,
    include_stacktrace: bool,
) -> dict[str, Any]:
    """Install castline's logging configuration.

    Args:
        log_format_type: ``"human"`` or ``"json"``.
        app_log_level_name: Level name for the castline logger, e.g. ``"DEBUG"``.
        include_stacktrace: Render full tracebacks instead of message chains.

    Returns:
        The applied dictConfig mapping, also handed to uvicorn.
    """
    global _should_include_stacktrace
    _should_include_stacktrace = include_stacktrace

    logging.setLogRecordFactory(custom_record_factory)

    config = copy.deepcopy(LOGGING_CONFIG)
    level = app_log_level_name.upper()
    if not isinstance(getattr(logging, level, None), int):
        print(
            f"Warning: Invalid LOG_LEVEL '{app_log_level_name}'. Defaulting to INFO.",
            file=sys.stderr,
        )
        level = "INFO"
    config["loggers"][APP_LOGGER_NAME]["level"] = level

    match log_format_type.lower():
        case "json":
            formatter = "json_formatter"
        case _:
            formatter = "human_readable_formatter"
    config["handlers"]["console_handler"]["formatter"] = formatter

    dictConfig(config)
    return config
