"""
Logging configuration for the catalog service.

Modules log through the standard library and structlog renders the output:

    import logging
    logger = logging.getLogger(__name__)
    logger.info("Catalog loaded")

Every record carries the current request id (empty outside a request).
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

import structlog

from core.config import Settings, settings as default_settings
from middleware.logging_middleware import get_request_id

FILE_FORMAT = "%(asctime)s | %(levelname)s | %(request_id)s | %(name)s | %(message)s"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(request_id)s | %(name)s | %(message)s"

# Chatty libraries that only log at INFO about their own plumbing
QUIET_LOGGERS = ("uvicorn.access", "uvicorn.error", "httpx", "httpcore", "watchfiles")


class RequestIdFilter(logging.Filter):
    """Stamps request_id onto stdlib records so formatters can use it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = get_request_id() or "-"
        return True


def add_request_id(logger, method_name, event_dict):
    """structlog processor mirroring RequestIdFilter"""
    request_id = get_request_id()
    if request_id:
        event_dict.setdefault("request_id", request_id)
    return event_dict


def _renderer(cfg: Settings):
    if cfg.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def _file_handler(path: Path, level: int, cfg: Settings) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=cfg.log_file_max_bytes, backupCount=cfg.log_file_backups)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def build_handlers(cfg: Settings, level: int) -> List[logging.Handler]:
    """
    Handlers for the root logger.

    Console output always; in production also a full log and an error-only
    log under cfg.log_dir, both rotated.
    """
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(logging.Formatter("%(message)s" if cfg.log_format == "json" else CONSOLE_FORMAT))
    handlers: List[logging.Handler] = [console]

    if cfg.environment == "production":
        log_dir = Path(cfg.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(_file_handler(log_dir / "catalog.log", logging.DEBUG, cfg))
        handlers.append(_file_handler(log_dir / "catalog_errors.log", logging.ERROR, cfg))

    request_filter = RequestIdFilter()
    for handler in handlers:
        handler.addFilter(request_filter)
    return handlers


def setup_logging(app_settings: Optional[Settings] = None):
    """Configure structlog and the stdlib root logger. Safe to call more than once."""
    cfg = app_settings or default_settings
    log_level = getattr(logging, cfg.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_request_id,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _renderer(cfg),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    for handler in build_handlers(cfg, log_level):
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={cfg.log_level}, format={cfg.log_format}, env={cfg.environment}"
    )
