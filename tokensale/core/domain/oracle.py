"""
PriceOracle — курс settlement currency к USD

Движок только читает курс: rate = количество wei за 1 USD.
Реализация фида (on-chain feeder, внешний сервис) вне scope движка;
InMemoryPriceOracle используется в тестах и при встраивании.
"""

from typing import Protocol, runtime_checkable

import structlog

from tokensale.core.errors import InvalidConfigError

logger = structlog.get_logger(__name__)


@runtime_checkable
class PriceOracle(Protocol):
    """Capability: чтение текущего курса (wei за 1 USD)."""

    def read(self) -> int: ...


class InMemoryPriceOracle:
    """
    Оракул с курсом в памяти.

    Курс должен быть положительным: нулевой курс делает конверсию wei → USD
    неопределённой.
    """

    def __init__(self, rate_wei_per_usd: int):
        self._rate = 0
        self.write(rate_wei_per_usd)

    def read(self) -> int:
        return self._rate

    def write(self, rate_wei_per_usd: int) -> None:
        """Обновление курса (роль feeder)."""
        if not isinstance(rate_wei_per_usd, int) or rate_wei_per_usd <= 0:
            raise InvalidConfigError("rate_wei_per_usd", f"must be a positive int, got {rate_wei_per_usd!r}")

        logger.debug("oracle_rate_updated", previous=self._rate, rate=rate_wei_per_usd)
        self._rate = rate_wei_per_usd
