"""
CompanyDistributionTable — таблица распределения токенов компании

Каждая строка: адрес, процент от токенов компании и собственное окно vesting.
Сумма процентов строго 100. Таблица задаётся один раз до finish.
"""

from typing import Sequence

from pydantic import BaseModel, Field

from tokensale.core.domain.units import PERCENT_BASE, percentage_of
from tokensale.core.errors import ArrayLengthMismatchError, InvalidDistributionError


class DistributionRow(BaseModel):
    """Доля одного получателя токенов компании."""

    address: str = Field(..., min_length=1, description="Адрес получателя")
    percentage: int = Field(..., ge=0, le=100, description="Процент от токенов компании")
    vest_start_month: int = Field(..., ge=0)
    vest_end_month: int = Field(..., ge=0)

    model_config = {"frozen": True}


class CompanyDistributionTable:
    """Неизменяемая проверенная таблица распределения."""

    __slots__ = ("_rows",)

    def __init__(self, rows: tuple[DistributionRow, ...]):
        self._rows = rows

    @classmethod
    def from_arrays(
        cls,
        addresses: Sequence[str],
        percentages: Sequence[int],
        vest_start_months: Sequence[int],
        vest_end_months: Sequence[int],
    ) -> "CompanyDistributionTable":
        """
        Построение и проверка таблицы.

        Raises:
            InvalidDistributionError: Пустая таблица, повтор адреса, окно start ≥ end, сумма ≠ 100
            ArrayLengthMismatchError: Массивы разной длины
        """
        if len(addresses) == 0:
            raise InvalidDistributionError(
                "empty_distribution",
                "provide at least one address to distribute the company tokens",
            )

        lengths = {
            "addresses": len(addresses),
            "percentages": len(percentages),
            "vest_start_months": len(vest_start_months),
            "vest_end_months": len(vest_end_months),
        }
        if len(set(lengths.values())) > 1:
            raise ArrayLengthMismatchError(lengths)

        rows = []
        seen: set[str] = set()
        for index, (address, percentage, start, end) in enumerate(
            zip(addresses, percentages, vest_start_months, vest_end_months)
        ):
            if start >= end:
                raise InvalidDistributionError(
                    "invalid_vesting_time",
                    "invalid vesting time",
                    details={"index": index, "vest_start_month": start, "vest_end_month": end},
                )
            if address in seen:
                raise InvalidDistributionError(
                    "duplicate_address",
                    "each address can receive only one company distribution",
                    details={"index": index, "address": address},
                )
            seen.add(address)
            rows.append(
                DistributionRow(
                    address=address,
                    percentage=percentage,
                    vest_start_month=start,
                    vest_end_month=end,
                )
            )

        total = sum(row.percentage for row in rows)
        if total != PERCENT_BASE:
            raise InvalidDistributionError(
                "percentages_not_100",
                "you have to distribute all the company tokens",
                details={"total_percentage": total},
            )

        return cls(tuple(rows))

    @property
    def rows(self) -> tuple[DistributionRow, ...]:
        return self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def allocate(self, tokens_distributed: int) -> list[tuple[DistributionRow, int]]:
        """Доля каждой строки: floor(tokens_distributed * percentage / 100)."""
        return [(row, percentage_of(tokens_distributed, row.percentage)) for row in self._rows]
