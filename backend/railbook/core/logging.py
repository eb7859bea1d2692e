"""
structlog setup for the reservation service.

Every log line carries the service name and environment. Fares (Decimal) and
travel dates are logged as plain values and rendered as strings, so
`logger.info("booking_created", total_fare=fare, departure_date=day)` reads
the same on the console and in JSON.
"""

import logging
import sys
from datetime import date
from decimal import Decimal

import structlog
from railbook.core.config import Settings, get_settings

# Third-party loggers that are too chatty at INFO under booking load
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncpg")


def service_context(settings: Settings):
    def add_service_context(logger, method_name, event_dict):
        event_dict.setdefault("service", settings.APP_NAME)
        event_dict.setdefault("environment", settings.ENVIRONMENT)
        return event_dict

    return add_service_context


def render_domain_values(logger, method_name, event_dict):
    """Decimal fares and dates as strings: '2000.00', '2025-06-01'."""
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = format(value, "f")
        elif isinstance(value, date):
            event_dict[key] = value.isoformat()
    return event_dict


def wants_json(settings: Settings) -> bool:
    return settings.LOG_JSON or settings.ENVIRONMENT == "production"


def build_processors(settings: Settings) -> list:
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        service_context(settings),
        render_domain_values,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if wants_json(settings):
        processors.append(structlog.processors.format_exc_info)
    return processors


def build_renderer(settings: Settings):
    if wants_json(settings):
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging() -> None:
    settings = get_settings()

    structlog.configure(
        processors=[
            *build_processors(settings),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                build_renderer(settings),
            ]
        )
    )

    root_logger = logging.getLogger()
    # Replace handlers so repeated app startups (tests) don't duplicate output
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
