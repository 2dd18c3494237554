"""
DiscountTable — таблица скидок по размеру взноса

Строка таблицы (DiscountRow):
- threshold_usd: минимальный взнос (fixed-point USD), с которого действует строка
- value: процент скидки (is_percentage=True) или фиксированная цена токена
  в fixed-point USD (is_percentage=False)
- vest_start_month / vest_end_month: окно линейного vesting купленных токенов

ИНВАРИАНТЫ (проверяются атомарно при построении):
1. Параллельные массивы одинаковой длины
2. Пороги строго возрастают
3. vest_end_month > vest_start_month
4. Процентная скидка в (0, 100); фиксированная цена > 0

Выбор строки: строка с максимальным индексом, у которой threshold_usd ≤ взноса.
Нет такой строки — скидки нет, токены не попадают в vesting.
"""

from bisect import bisect_right
from typing import Sequence

from pydantic import BaseModel, Field

from tokensale.core.errors import (
    ArrayLengthMismatchError,
    InvalidDiscountRuleError,
    UnorderedThresholdsError,
)
from tokensale.core.math.bonding_curve import MAX_PERCENTAGE_DISCOUNT


class DiscountRow(BaseModel):
    """Одна ступень таблицы скидок."""

    threshold_usd: int = Field(..., ge=0, description="Минимальный взнос (fixed-point USD)")
    value: int = Field(..., ge=0, description="Процент скидки или фиксированная цена (fixed-point USD)")
    is_percentage: bool = Field(..., description="True: value — процент, False: фиксированная цена")
    vest_start_month: int = Field(..., ge=0, description="Начало vesting (месяцев от reference)")
    vest_end_month: int = Field(..., ge=0, description="Конец vesting (месяцев от reference)")

    model_config = {"frozen": True}


def _check_row(index: int, row: DiscountRow) -> None:
    if row.vest_end_month <= row.vest_start_month:
        raise InvalidDiscountRuleError(index, "vesting_duration", "Vesting duration must be positive")

    if row.is_percentage:
        if row.value == 0:
            raise InvalidDiscountRuleError(index, "no_discount", "No discount set")
        if row.value >= MAX_PERCENTAGE_DISCOUNT:
            raise InvalidDiscountRuleError(index, "discount_too_high", "Discount too high")
    elif row.value == 0:
        raise InvalidDiscountRuleError(index, "discount_too_high", "Discount too high")


class DiscountTable:
    """
    Неизменяемая упорядоченная таблица скидок.

    Строится только через from_arrays / from_rows, которые проверяют
    все инварианты до создания объекта. Пустая таблица допустима.
    """

    __slots__ = ("_rows", "_thresholds")

    def __init__(self, rows: tuple[DiscountRow, ...]):
        self._rows = rows
        self._thresholds = tuple(row.threshold_usd for row in rows)

    @classmethod
    def empty(cls) -> "DiscountTable":
        return cls(())

    @classmethod
    def from_rows(cls, rows: Sequence[DiscountRow]) -> "DiscountTable":
        """
        Построение таблицы из готовых строк.

        Raises:
            UnorderedThresholdsError: Если пороги не строго возрастают
            InvalidDiscountRuleError: Если строка нарушает инварианты значения/окна
        """
        rows = tuple(rows)
        for index, row in enumerate(rows):
            if index > 0 and row.threshold_usd <= rows[index - 1].threshold_usd:
                raise UnorderedThresholdsError(index, rows[index - 1].threshold_usd, row.threshold_usd)
            _check_row(index, row)

        return cls(rows)

    @classmethod
    def from_arrays(
        cls,
        thresholds_usd: Sequence[int],
        values: Sequence[int],
        is_percentage: Sequence[bool],
        vest_start_months: Sequence[int],
        vest_end_months: Sequence[int],
    ) -> "DiscountTable":
        """
        Построение таблицы из параллельных массивов (формат конфигурации продажи).

        Raises:
            ArrayLengthMismatchError: Если массивы разной длины
            UnorderedThresholdsError: Если пороги не строго возрастают
            InvalidDiscountRuleError: Если строка нарушает инварианты значения/окна
        """
        lengths = {
            "thresholds_usd": len(thresholds_usd),
            "values": len(values),
            "is_percentage": len(is_percentage),
            "vest_start_months": len(vest_start_months),
            "vest_end_months": len(vest_end_months),
        }
        if len(set(lengths.values())) > 1:
            raise ArrayLengthMismatchError(lengths)

        rows = [
            DiscountRow(
                threshold_usd=threshold,
                value=value,
                is_percentage=percentage,
                vest_start_month=start,
                vest_end_month=end,
            )
            for threshold, value, percentage, start, end in zip(
                thresholds_usd, values, is_percentage, vest_start_months, vest_end_months
            )
        ]
        return cls.from_rows(rows)

    @property
    def rows(self) -> tuple[DiscountRow, ...]:
        return self._rows

    def __len__(self) -> int:
        return len(self._rows)

    def __bool__(self) -> bool:
        return bool(self._rows)

    def select_row(self, contribution_usd: int) -> DiscountRow | None:
        """
        Строка, применимая к взносу: максимальный индекс с threshold_usd ≤ contribution_usd.

        Returns:
            DiscountRow или None, если взнос меньше минимального порога
        """
        index = bisect_right(self._thresholds, contribution_usd) - 1
        if index < 0:
            return None
        return self._rows[index]
