"""
structlog setup shared by the API, its middlewares and the tests.

Records from the standard library (uvicorn, httpx, python-statemachine) go
through the same processor chain as structlog's own, so the trace_id and
session_id bound by the middlewares appear on every line.
"""

import logging
from typing import Any, List, Optional

import structlog
from benefitflow.core.config import Settings, settings as default_settings

ENVIRONMENT_LOG_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}
LOG_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Chatty at INFO; only their warnings are worth keeping
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "statemachine")


def resolve_log_level(app_settings: Settings) -> str:
    """LOG_LEVEL when it names a level, otherwise the environment's default."""
    configured = app_settings.log_level.upper()
    if configured in LOG_LEVEL_NAMES:
        return configured
    return ENVIRONMENT_LOG_LEVELS.get(app_settings.environment, "INFO")


def _shared_processors() -> List[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(app_settings: Optional[Settings] = None, json_logs: Optional[bool] = None) -> None:
    """Call once at startup. JSON lines in production, plain console output elsewhere."""
    app_settings = app_settings or default_settings
    if json_logs is None:
        json_logs = app_settings.environment == "production"

    pre_chain = _shared_processors()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(colors=False)
    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(resolve_log_level(app_settings))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
