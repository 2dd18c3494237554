"""
Vesting — записи и гранты линейного vesting

VestingEntry — состояние vesting одного holder в ledger:
- vesteable_tokens: токены, разблокируемые линейно в окне [start, end]
- claimed_tokens: уже выведенные в circulating supply
- immediate_tokens: токены без задержки (покупка без скидки),
  доступны после завершения продажи

Окно задаётся в месяцах от reference timestamp ledger:
    ref_start = reference + vest_start_month * MONTH_SECONDS
    ref_end   = reference + vest_end_month   * MONTH_SECONDS

Entitlement на момент now:
    now ≥ ref_end:   vesteable
    now < ref_start: 0
    иначе:           floor(vesteable * (now - ref_start) / (ref_end - ref_start))

VestingGrant — запрос на начисление vesting (одиночный или в batch).
"""

from typing import Sequence

from pydantic import BaseModel, Field

from tokensale.core.domain.units import vesting_window
from tokensale.core.errors import ArrayLengthMismatchError


class VestingEntry(BaseModel):
    """Состояние vesting одного holder. Неизменяемо: ledger заменяет запись целиком."""

    vesteable_tokens: int = Field(0, ge=0, description="Токены в линейном vesting (fixed-point)")
    claimed_tokens: int = Field(0, ge=0, description="Уже выведенные токены (fixed-point)")
    immediate_tokens: int = Field(0, ge=0, description="Токены без задержки, доступны после finish")
    vest_start_month: int = Field(0, ge=0, description="Начало окна (месяцев от reference)")
    vest_end_month: int = Field(0, ge=0, description="Конец окна (месяцев от reference)")

    model_config = {"frozen": True}

    @property
    def has_window(self) -> bool:
        """Окно vesting уже зафиксировано (был хотя бы один grant с vesting)."""
        return self.vesteable_tokens > 0

    @property
    def total_tokens(self) -> int:
        return self.vesteable_tokens + self.immediate_tokens

    @property
    def unclaimed_tokens(self) -> int:
        return self.total_tokens - self.claimed_tokens

    def window(self, reference_timestamp: int) -> tuple[int, int]:
        """Абсолютное окно (ref_start, ref_end) в UNIX-секундах."""
        return vesting_window(reference_timestamp, self.vest_start_month, self.vest_end_month)

    def vested_amount(self, reference_timestamp: int, now: int) -> int:
        """Разблокированная на момент now часть vesteable_tokens (floor)."""
        if not self.has_window:
            return 0

        ref_start, ref_end = self.window(reference_timestamp)
        if now >= ref_end:
            return self.vesteable_tokens
        if now < ref_start:
            return 0

        return self.vesteable_tokens * (now - ref_start) // (ref_end - ref_start)

    def claimable(self, reference_timestamp: int, now: int, include_immediate: bool) -> int:
        """
        Доступно к выводу на момент now.

        Args:
            reference_timestamp: Якорь vesting ledger
            now: Текущее время (UNIX-секунды)
            include_immediate: Учитывать immediate_tokens (продажа завершена)
        """
        entitled = self.vested_amount(reference_timestamp, now)
        if include_immediate:
            entitled += self.immediate_tokens

        return max(entitled - self.claimed_tokens, 0)


class VestingGrant(BaseModel):
    """Запрос на начисление vesting одному holder."""

    holder: str = Field(..., min_length=1, description="Адрес получателя")
    amount: int = Field(..., ge=0, description="Количество токенов (fixed-point)")
    vest_start_month: int = Field(..., ge=0)
    vest_end_month: int = Field(..., ge=0)

    model_config = {"frozen": True}

    @classmethod
    def batch_from_arrays(
        cls,
        holders: Sequence[str],
        amounts: Sequence[int],
        vest_start_months: Sequence[int],
        vest_end_months: Sequence[int],
    ) -> list["VestingGrant"]:
        """
        Построение batch грантов из параллельных массивов.

        Raises:
            ArrayLengthMismatchError: Если массивы разной длины
        """
        lengths = {
            "holders": len(holders),
            "amounts": len(amounts),
            "vest_start_months": len(vest_start_months),
            "vest_end_months": len(vest_end_months),
        }
        if len(set(lengths.values())) > 1:
            raise ArrayLengthMismatchError(lengths)

        return [
            cls(holder=holder, amount=amount, vest_start_month=start, vest_end_month=end)
            for holder, amount, start, end in zip(holders, amounts, vest_start_months, vest_end_months)
        ]
