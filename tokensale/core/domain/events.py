"""
Events — события движка продажи

Неизменяемые Pydantic модели, которые операции добавляют в упорядоченный
журнал событий (EventLog). Порядок событий совпадает с порядком операций.
"""

from typing import Iterator, Union

from pydantic import BaseModel, Field


class TokensPurchased(BaseModel):
    """Покупка: кто заплатил, кому начислено, сколько wei."""

    purchaser: str
    beneficiary: str
    value: int = Field(..., ge=0, description="Отправлено wei")

    model_config = {"frozen": True}


class TokensDelivered(BaseModel):
    """Параметры начисления по покупке (скидка 0 / False / 0 / 0 если не применялась)."""

    wei_sent: int = Field(..., ge=0)
    token_amount: int = Field(..., ge=0)
    discount_value_used: int = Field(..., ge=0)
    discount_is_percentage: bool
    months_to_start_vesting: int = Field(..., ge=0)
    months_to_end_vesting: int = Field(..., ge=0)

    model_config = {"frozen": True}


class TokensClaimed(BaseModel):
    user: str
    amount: int = Field(..., gt=0)

    model_config = {"frozen": True}


class Transfer(BaseModel):
    from_address: str
    to_address: str
    value: int = Field(..., ge=0)

    model_config = {"frozen": True}


class CrowdsaleFinished(BaseModel):
    tokens_distributed: int = Field(..., ge=0, description="Токены компании, распределённые при finish")

    model_config = {"frozen": True}


SaleEvent = Union[TokensPurchased, TokensDelivered, TokensClaimed, Transfer, CrowdsaleFinished]


class EventLog:
    """Упорядоченный append-only журнал событий."""

    def __init__(self) -> None:
        self._events: list[SaleEvent] = []

    def emit(self, event: SaleEvent) -> None:
        self._events.append(event)

    def __iter__(self) -> Iterator[SaleEvent]:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def of_type(self, event_type: type) -> list[SaleEvent]:
        """Все события заданного типа в порядке появления."""
        return [event for event in self._events if isinstance(event, event_type)]

    def last(self) -> SaleEvent | None:
        return self._events[-1] if self._events else None
