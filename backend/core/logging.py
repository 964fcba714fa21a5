"""Configuration de logging basée sur structlog.

Objectif du module
------------------
- Logs structurés lisibles en développement, JSON une ligne par événement en production.
- Propager le contexte (request_id, slug...) lié via `structlog.contextvars`.
"""

import logging
import sys

import structlog


def setup_logging(level: str = "DEBUG", json_logs: bool = False) -> None:
    """Configure structlog; `level` est un nom de niveau (`INFO`, `WARNING`...)."""
    renderer = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )
