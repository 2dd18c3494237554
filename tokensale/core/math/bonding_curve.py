"""
BondingCurve — цена токена как функция собранной суммы

Кривая (USD за токен, x — USD, собранные продажей сверх presale):

    price(x) = 1 + ln(1 + slope * x / scale_usd) / ln(log_base)

По умолчанию slope = 9, scale_usd = 10_000_000, log_base = 3:
    price(0)    = 1
    price(1e6)  ≈ 1.584240585
    price(21e6) ≈ 3.722270416

Кривая непрерывна и строго возрастает. Покупка на сумму C начиная с R
оценивается по цене середины интервала:

    average_price(R, C) = price(R + C / 2)
    tokens = C / average_price

Скидки:
- процентная: effective_price = average_price * (100 - value) / 100
- фиксированная цена: effective_price = value (кривая игнорируется)

Все значения — fixed-point int (см. fixed_point).
"""

from dataclasses import dataclass
from typing import Final

from tokensale.core.math.fixed_point import PRECISION, div, ln, validate_non_negative

# =============================================================================
# ПАРАМЕТРЫ КРИВОЙ
# =============================================================================

# Основание логарифма кривой
DEFAULT_LOG_BASE: Final[int] = 3

# Наклон: множитель x внутри логарифма
DEFAULT_SLOPE: Final[int] = 9

# Масштаб USD внутри логарифма (целые доллары)
DEFAULT_SCALE_USD: Final[int] = 10_000_000

# Максимальная процентная скидка (не включительно)
MAX_PERCENTAGE_DISCOUNT: Final[int] = 100


@dataclass(frozen=True)
class CurveParameters:
    """Параметры логарифмической bonding curve."""

    log_base: int = DEFAULT_LOG_BASE
    slope: int = DEFAULT_SLOPE
    scale_usd: int = DEFAULT_SCALE_USD

    def __post_init__(self) -> None:
        if self.log_base < 2:
            raise ValueError(f"log_base must be >= 2, got {self.log_base}")
        if self.slope <= 0:
            raise ValueError(f"slope must be positive, got {self.slope}")
        if self.scale_usd <= 0:
            raise ValueError(f"scale_usd must be positive, got {self.scale_usd}")


DEFAULT_CURVE: Final[CurveParameters] = CurveParameters()


@dataclass(frozen=True)
class PurchaseQuote:
    """Расчёт покупки: цены и количество токенов для одного взноса."""

    contribution_usd: int
    spot_price_usd: int
    average_price_usd: int
    effective_price_usd: int
    tokens: int

    # Применённая скидка (0 / False если скидки нет)
    discount_value: int
    discount_is_percentage: bool


# =============================================================================
# ЦЕНА
# =============================================================================


def price_at(
    raised_usd: int,
    precision: int = PRECISION,
    curve: CurveParameters = DEFAULT_CURVE,
) -> int:
    """
    Цена следующего токена (USD, fixed-point) при собранной сумме raised_usd.

    Args:
        raised_usd: USD, собранные продажей (fixed-point, без presale)
        precision: Масштаб fixed-point
        curve: Параметры кривой

    Returns:
        price(raised_usd) в fixed-point

    Examples:
        >>> price_at(0)
        1000000000000000000
    """
    validate_non_negative(raised_usd, "raised_usd")

    argument = precision + raised_usd * curve.slope // curve.scale_usd
    log_argument = ln(argument, precision)
    log_base = ln(curve.log_base * precision, precision)

    return precision + div(log_argument, log_base, precision)


def average_price(
    raised_usd: int,
    contribution_usd: int,
    precision: int = PRECISION,
    curve: CurveParameters = DEFAULT_CURVE,
) -> int:
    """
    Средняя цена покупки на contribution_usd начиная с raised_usd.

    Цена берётся в середине интервала [raised, raised + contribution],
    поэтому результат не зависит от дробления на мелкие покупки внутри
    одного ценового уровня и непрерывен по contribution_usd.
    """
    validate_non_negative(contribution_usd, "contribution_usd")
    return price_at(raised_usd + contribution_usd // 2, precision, curve)


def tokens_for_price(contribution_usd: int, price_usd: int, precision: int = PRECISION) -> int:
    """Количество токенов (fixed-point) за contribution_usd по цене price_usd."""
    return div(contribution_usd, price_usd, precision)


def apply_percentage_discount(price_usd: int, discount_pct: int) -> int:
    """
    Цена после процентной скидки: price * (100 - discount_pct) / 100.

    Raises:
        ValueError: Если discount_pct вне (0, 100)
    """
    if not 0 < discount_pct < MAX_PERCENTAGE_DISCOUNT:
        raise ValueError(f"discount_pct must be in (0, 100), got {discount_pct}")

    return price_usd * (MAX_PERCENTAGE_DISCOUNT - discount_pct) // MAX_PERCENTAGE_DISCOUNT


# =============================================================================
# РАСЧЁТ ПОКУПКИ
# =============================================================================


def quote_purchase(
    raised_usd: int,
    contribution_usd: int,
    discount_value: int = 0,
    discount_is_percentage: bool = False,
    precision: int = PRECISION,
    curve: CurveParameters = DEFAULT_CURVE,
) -> PurchaseQuote:
    """
    Расчёт количества токенов для взноса с учётом скидки.

    Порядок:
        1. spot = price(raised)
        2. average = price(raised + contribution / 2)
        3. effective:
           - без скидки (discount_value == 0): average
           - процентная: average * (100 - value) / 100
           - фиксированная: value
        4. tokens = contribution / effective

    Args:
        raised_usd: USD, собранные продажей до покупки (fixed-point)
        contribution_usd: Взнос (fixed-point USD)
        discount_value: Процент скидки или фиксированная цена (0 = нет скидки)
        discount_is_percentage: True для процентной скидки
        precision: Масштаб fixed-point
        curve: Параметры кривой

    Returns:
        PurchaseQuote
    """
    spot = price_at(raised_usd, precision, curve)
    average = average_price(raised_usd, contribution_usd, precision, curve)

    if discount_value == 0:
        effective = average
    elif discount_is_percentage:
        effective = apply_percentage_discount(average, discount_value)
    else:
        effective = discount_value

    return PurchaseQuote(
        contribution_usd=contribution_usd,
        spot_price_usd=spot,
        average_price_usd=average,
        effective_price_usd=effective,
        tokens=tokens_for_price(contribution_usd, effective, precision),
        discount_value=discount_value,
        discount_is_percentage=discount_is_percentage if discount_value else False,
    )

