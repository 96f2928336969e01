import logging
import uuid

import structlog

NOISY_LOGGERS = ("pymongo", "redis", "httpx", "httpcore")
REQUEST_ID_HEADER = "x-request-id"


def setup_logging(debug: bool) -> None:
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")

    # Client libraries log every command at DEBUG
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    processors.append(structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def bind_request_context(request_id: str | None, path: str) -> str:
    """Start a fresh log context for one request and return its id."""
    structlog.contextvars.clear_contextvars()
    request_id = request_id or uuid.uuid4().hex
    structlog.contextvars.bind_contextvars(request_id=request_id, path=path)
    return request_id


def bind_session_user(user_id: object) -> None:
    """Attach the authenticated user to every log line of the current request."""
    structlog.contextvars.bind_contextvars(user_id=str(user_id))
