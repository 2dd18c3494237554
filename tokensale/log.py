"""
Logging — структурированное логирование (structlog поверх stdlib logging)

Модули получают логгер через structlog.get_logger(__name__) и пишут
key-value события. configure_logging вызывается один раз приложением.
"""

import logging
import sys

import structlog


def configure_logging(level: int | str = logging.INFO, json_output: bool = False) -> None:
    """
    Настройка structlog и stdlib logging.

    Args:
        level: Уровень stdlib logging
        json_output: JSON вместо консольного рендера (для сбора логов)
    """
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=True)

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
