"""
Units — Централизованный модуль конверсии единиц

Единственный допустимый способ преобразований между:
- usd (fixed-point, масштаб precision)
- wei (целые единицы settlement currency)
- месяцами vesting и секундами UNIX-времени

Курс оракула — rate: количество wei за 1 USD.

ЗАПРЕЩЕНО смешивать единицы без явного конвертера из этого модуля.
"""

from typing import Final

from tokensale.core.errors import DivisionByZeroError
from tokensale.core.math.fixed_point import PRECISION, validate_non_negative

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Длина месяца vesting (30 дней)
MONTH_SECONDS: Final[int] = 30 * 24 * 60 * 60

# Нулевой адрес: источник mint/claim в событиях Transfer
ZERO_ADDRESS: Final[str] = "0x0000000000000000000000000000000000000000"

# Доля в процентах: знаменатель
PERCENT_BASE: Final[int] = 100


# =============================================================================
# USD ↔ WEI
# =============================================================================


def usd_to_wei(usd: int, rate_wei_per_usd: int, precision: int = PRECISION) -> int:
    """
    Конверсия: USD (fixed-point) → wei по курсу оракула.

    wei = usd * rate / precision (округление вниз)

    Args:
        usd: Сумма в USD (fixed-point)
        rate_wei_per_usd: Курс оракула (wei за 1 USD)
        precision: Масштаб fixed-point

    Returns:
        Сумма в wei
    """
    validate_non_negative(usd, "usd")
    validate_non_negative(rate_wei_per_usd, "rate_wei_per_usd")

    return usd * rate_wei_per_usd // precision


def wei_to_usd(wei: int, rate_wei_per_usd: int, precision: int = PRECISION) -> int:
    """
    Конверсия: wei → USD (fixed-point) по курсу оракула.

    usd = wei * precision / rate (округление вниз)

    Raises:
        DivisionByZeroError: Если курс равен нулю
    """
    validate_non_negative(wei, "wei")
    validate_non_negative(rate_wei_per_usd, "rate_wei_per_usd")

    if rate_wei_per_usd == 0:
        raise DivisionByZeroError(wei * precision)

    return wei * precision // rate_wei_per_usd


# =============================================================================
# ВРЕМЯ
# =============================================================================


def months_to_seconds(months: int) -> int:
    """Длительность в месяцах vesting → секунды."""
    return months * MONTH_SECONDS


def vesting_window(reference_timestamp: int, start_month: int, end_month: int) -> tuple[int, int]:
    """
    Абсолютное окно vesting (ref_start, ref_end) в UNIX-секундах.

    ref_start = reference + start_month * MONTH_SECONDS
    ref_end   = reference + end_month   * MONTH_SECONDS
    """
    return (
        reference_timestamp + months_to_seconds(start_month),
        reference_timestamp + months_to_seconds(end_month),
    )


# =============================================================================
# ПРОЦЕНТЫ
# =============================================================================


def percentage_of(amount: int, percentage: int) -> int:
    """floor(amount * percentage / 100)."""
    return amount * percentage // PERCENT_BASE
