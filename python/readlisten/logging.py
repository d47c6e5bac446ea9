"""structlog setup shared by the API and the Celery worker.

Every log line is one JSON object on stdout. Besides the event name and level
it carries whatever correlation fields are set for the current context:

    request_id   X-Request-ID of the HTTP request, or the one a job was
                 submitted under
    user_id      caller once the token is verified
    rl_item_id   content item a job is working on
    task_name    Celery task name
    task_id      Celery task id
    path/method  HTTP request line (path only, never the query string)

Fields live in ContextVars, so concurrent requests and tasks never see each
other's values. Call configure_logging() once per process.
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any

import structlog

REQUEST_FIELDS = ("request_id", "user_id", "path", "method")
TASK_FIELDS = ("request_id", "user_id", "rl_item_id", "task_name", "task_id")

_context: dict[str, ContextVar[Any]] = {
    name: ContextVar(f"readlisten_{name}", default=None)
    for name in dict.fromkeys(REQUEST_FIELDS + TASK_FIELDS)
}

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "celery.redirected")


def add_request_context(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    """Processor: merge the set correlation fields into the event.

    Explicit keyword arguments to the log call win over context values.
    """
    for name, var in _context.items():
        value = var.get()
        if value is not None and value != "":
            event_dict.setdefault(name, value)
    return event_dict


def _set(**fields: Any) -> None:
    for name, value in fields.items():
        _context[name].set(value)


def _clear(names: tuple[str, ...]) -> None:
    for name in names:
        _context[name].set(None)


def configure_logging(json_format: bool = True, level: int = logging.INFO) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    ``json_format=False`` switches to the console renderer for local runs.
    """
    pre_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_request_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    renderer = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_context(
    request_id: str | None,
    user_id: str | None = None,
    path: str | None = None,
    method: str | None = None,
) -> None:
    """Start the logging context of an HTTP request."""
    _set(request_id=request_id, user_id=user_id, path=path, method=method)


def set_user_id(user_id: str | None) -> None:
    """Record the verified caller; body-token routes learn it inside the handler."""
    _set(user_id=user_id)


def clear_request_context() -> None:
    _clear(REQUEST_FIELDS)


def get_request_id() -> str | None:
    return _context["request_id"].get()


def configure_task_logging(
    request_id: str | None = None,
    task_name: str | None = None,
    task_id: str | None = None,
    rl_item_id: int | None = None,
    user_id: str | None = None,
) -> None:
    """Start the logging context of a Celery task run.

    ``request_id`` is the id of the request that enqueued the job, so worker
    lines can be joined with the API line that submitted it.
    """
    _set(
        request_id=request_id,
        task_name=task_name,
        task_id=task_id,
        rl_item_id=rl_item_id,
        user_id=user_id,
    )


def clear_task_context() -> None:
    _clear(TASK_FIELDS)
