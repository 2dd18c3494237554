"""Crowdsale State Machine — жизненный цикл продажи.

Состояния:
- PENDING: now < opening_time
- OPEN: opening_time ≤ now ≤ closing_time и cap не достигнут
- CLOSED_NOT_FINISHED: после closing_time или cap достигнут, finish не вызван
- FINISHED: finish выполнен (необратимо)

Состояние вычисляется из времени, собранной суммы и флага finished;
отдельного хранимого состояния нет, поэтому переходы монотонны по времени.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tokensale.core.errors import (
    InvalidConfigError,
    SaleFinishedError,
    SaleNotClosedError,
    SaleNotOpenError,
)


class SaleState(str, Enum):
    """Состояние продажи."""

    PENDING = "PENDING"
    OPEN = "OPEN"
    CLOSED_NOT_FINISHED = "CLOSED_NOT_FINISHED"
    FINISHED = "FINISHED"


@dataclass(frozen=True)
class SaleStatusResult:
    """Результат оценки состояния продажи."""

    state: SaleState
    purchase_allowed: bool
    finish_allowed: bool

    # Диагностика
    block_reason: str | None
    details: dict[str, Any] = field(default_factory=dict)


class CrowdsaleStateMachine:
    """State machine продажи: PENDING → OPEN → CLOSED_NOT_FINISHED → FINISHED.

    Покупка разрешена только в OPEN. finish разрешён только в CLOSED_NOT_FINISHED
    (после closing_time или при достижении cap).
    """

    def __init__(self, opening_time: int, closing_time: int, funding_cap_usd: int):
        """
        Args:
            opening_time: начало продажи (UNIX-секунды)
            closing_time: конец продажи (UNIX-секунды, включительно)
            funding_cap_usd: cap собранной суммы (fixed-point USD, включая presale)
        """
        if closing_time < opening_time:
            raise InvalidConfigError(
                "closing_time",
                f"closing_time {closing_time} must be >= opening_time {opening_time}",
            )

        self.opening_time = opening_time
        self.closing_time = closing_time
        self.funding_cap_usd = funding_cap_usd

    def cap_reached(self, total_raised_usd: int) -> bool:
        return total_raised_usd >= self.funding_cap_usd

    def has_closed(self, now: int, total_raised_usd: int) -> bool:
        """Продажа закрыта по времени или по cap."""
        return now > self.closing_time or self.cap_reached(total_raised_usd)

    def evaluate(self, now: int, total_raised_usd: int, finished: bool) -> SaleStatusResult:
        """Оценка состояния продажи.

        Args:
            now: текущее время (UNIX-секунды)
            total_raised_usd: собранная сумма (fixed-point USD, включая presale)
            finished: был ли выполнен finish

        Returns:
            SaleStatusResult
        """
        details = {
            "now": now,
            "opening_time": self.opening_time,
            "closing_time": self.closing_time,
            "total_raised_usd": total_raised_usd,
            "funding_cap_usd": self.funding_cap_usd,
        }

        if finished:
            return SaleStatusResult(
                state=SaleState.FINISHED,
                purchase_allowed=False,
                finish_allowed=False,
                block_reason="sale_finished",
                details=details,
            )

        if now < self.opening_time:
            return SaleStatusResult(
                state=SaleState.PENDING,
                purchase_allowed=False,
                finish_allowed=False,
                block_reason="sale_not_open",
                details=details,
            )

        if self.has_closed(now, total_raised_usd):
            return SaleStatusResult(
                state=SaleState.CLOSED_NOT_FINISHED,
                purchase_allowed=False,
                finish_allowed=True,
                block_reason="sale_finished",
                details=details,
            )

        return SaleStatusResult(
            state=SaleState.OPEN,
            purchase_allowed=True,
            finish_allowed=False,
            block_reason="sale_not_closed",
            details=details,
        )

    def require_purchase_allowed(self, now: int, total_raised_usd: int, finished: bool) -> SaleStatusResult:
        """Проверка перед покупкой.

        Raises:
            SaleNotOpenError: продажа ещё не началась
            SaleFinishedError: продажа закрыта или завершена
        """
        status = self.evaluate(now, total_raised_usd, finished)
        if status.purchase_allowed:
            return status

        if status.state == SaleState.PENDING:
            raise SaleNotOpenError("Crowdsale is not open yet", details=status.details)
        if status.state == SaleState.FINISHED:
            raise SaleFinishedError()
        raise SaleFinishedError("Crowdsale has closed")

    def require_finish_allowed(self, now: int, total_raised_usd: int, finished: bool) -> SaleStatusResult:
        """Проверка перед finish.

        Raises:
            SaleFinishedError: finish уже выполнен
            SaleNotClosedError: продажа ещё открыта (или не началась) и cap не достигнут
        """
        status = self.evaluate(now, total_raised_usd, finished)
        if status.finish_allowed:
            return status

        if status.state == SaleState.FINISHED:
            raise SaleFinishedError()
        raise SaleNotClosedError("Crowdsale has not closed yet", details=status.details)
