"""
FixedPointMath — детерминированные fixed-point примитивы

Все суммы движка (USD, цены, токены) — целые числа, масштабированные на
precision (по умолчанию 1e18). Float не используется нигде в расчётах.

Модуль обеспечивает:
- mul/div с precision, задаваемой вызывающим (не фиксирована на экземпляр)
- Натуральный логарифм ln(x) в fixed-point с относительной ошибкой << 1e-9
- Конверсию Decimal/str ↔ fixed-point для конфигурации и отчётов

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Деление на ноль → DivisionByZeroError (никаких fallback значений)
2. ln(x) при x ≤ 0 → LogarithmDomainError
3. Округление всегда вниз (floor), результат детерминирован
4. Отрицательные операнды mul/div отклоняются (ValueError)
"""

from decimal import ROUND_DOWN, Decimal, localcontext
from typing import Final

from tokensale.core.errors import DivisionByZeroError, LogarithmDomainError

# =============================================================================
# КОНСТАНТЫ
# =============================================================================

# Стандартная precision движка: 18 десятичных знаков
PRECISION: Final[int] = 10**18

# Внутренняя рабочая шкала для ln (40 знаков, результат округляется к precision)
LN_WORKING_SCALE: Final[int] = 10**40


# =============================================================================
# ВАЛИДАЦИЯ
# =============================================================================


def validate_precision(precision: int) -> None:
    """
    Валидация precision.

    Raises:
        ValueError: Если precision не положительное целое
    """
    if not isinstance(precision, int) or isinstance(precision, bool):
        raise ValueError(f"precision must be an int, got {type(precision).__name__}")

    if precision <= 0:
        raise ValueError(f"precision must be positive, got {precision}")


def validate_non_negative(value: int, name: str) -> None:
    """
    Валидация, что fixed-point значение — неотрицательное целое.

    Raises:
        ValueError: Если value не int или value < 0
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")

    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


# =============================================================================
# УМНОЖЕНИЕ И ДЕЛЕНИЕ
# =============================================================================


def mul(a: int, b: int, precision: int = PRECISION) -> int:
    """
    Fixed-point умножение: floor(a * b / precision).

    Args:
        a: Первый множитель (fixed-point)
        b: Второй множитель (fixed-point)
        precision: Масштаб fixed-point

    Returns:
        Произведение в том же масштабе

    Examples:
        >>> mul(3 * 10**18, 3 * 10**18, 10**18)
        9000000000000000000
        >>> mul(3, 3 * 10**18, 10**18)
        9
    """
    validate_precision(precision)
    validate_non_negative(a, "a")
    validate_non_negative(b, "b")

    return a * b // precision


def div(a: int, b: int, precision: int = PRECISION) -> int:
    """
    Fixed-point деление: floor(a * precision / b).

    Args:
        a: Делимое (fixed-point)
        b: Делитель (fixed-point)
        precision: Масштаб fixed-point

    Returns:
        Частное в том же масштабе

    Raises:
        DivisionByZeroError: Если b == 0

    Examples:
        >>> div(10 * 10**18, 3 * 10**18, 10**18)
        3333333333333333333
        >>> div(3 * 10**18, 1, 10**18)
        3000000000000000000000000000000000000
    """
    validate_precision(precision)
    validate_non_negative(a, "a")
    validate_non_negative(b, "b")

    if b == 0:
        raise DivisionByZeroError(a)

    return a * precision // b


# =============================================================================
# НАТУРАЛЬНЫЙ ЛОГАРИФМ
# =============================================================================


def _ln_normalized(y: int) -> int:
    """
    ln(y / LN_WORKING_SCALE) для y в [LN_WORKING_SCALE, 2 * LN_WORKING_SCALE].

    Ряд atanh: ln(v) = 2 * (z + z^3/3 + z^5/5 + ...), z = (v - 1) / (v + 1).
    На отрезке [1, 2] |z| ≤ 1/3, ряд сходится за ~45 членов.
    """
    scale = LN_WORKING_SCALE
    z = (y - scale) * scale // (y + scale)
    z_squared = z * z // scale

    total = 0
    term = z
    n = 1
    while term:
        total += term // n
        term = term * z_squared // scale
        n += 2

    return 2 * total


# ln(2) в рабочей шкале, для range reduction
_LN2_SCALED: Final[int] = _ln_normalized(2 * LN_WORKING_SCALE)


def ln(x: int, precision: int = PRECISION) -> int:
    """
    Fixed-point натуральный логарифм: ln(x / precision) * precision.

    Алгоритм:
        1. Перевод x в рабочую шкалу 1e40
        2. Range reduction: x = y * 2^k, y в [1, 2)
        3. ln(x) = ln(y) + k * ln(2), ln(y) через atanh-ряд
        4. Округление вниз к precision вызывающего

    Args:
        x: Аргумент (fixed-point, > 0)
        precision: Масштаб fixed-point

    Returns:
        ln(x) в том же масштабе (может быть отрицательным при x < precision)

    Raises:
        LogarithmDomainError: Если x ≤ 0

    Examples:
        >>> ln(10**19, 10**19)
        0
        >>> ln(27182818284, 10**10)  # e
        9999999999
    """
    validate_precision(precision)

    if not isinstance(x, int) or isinstance(x, bool):
        raise ValueError(f"x must be an int, got {type(x).__name__}")

    if x <= 0:
        raise LogarithmDomainError(x)

    scale = LN_WORKING_SCALE
    y = x * scale // precision
    if y == 0:
        raise LogarithmDomainError(x)

    k = 0
    while y >= 2 * scale:
        y >>= 1
        k += 1
    while y < scale:
        y <<= 1
        k -= 1

    result_scaled = _ln_normalized(y) + k * _LN2_SCALED

    return result_scaled * precision // scale


# =============================================================================
# КОНВЕРСИЯ
# =============================================================================


def to_fixed(value: int | str | Decimal, precision: int = PRECISION) -> int:
    """
    Конверсия десятичного значения в fixed-point (округление вниз).

    Float намеренно не принимается: '0.1' и 0.1 дают разные результаты.

    Examples:
        >>> to_fixed("1.5", 10**18)
        1500000000000000000
        >>> to_fixed(30000, 10**18)
        30000000000000000000000
    """
    validate_precision(precision)

    if isinstance(value, float):
        raise ValueError(f"float values are not accepted, pass a str or Decimal: {value}")

    with localcontext() as ctx:
        ctx.prec = 80
        scaled = Decimal(value) * Decimal(precision)
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_fixed(value: int, precision: int = PRECISION) -> Decimal:
    """
    Конверсия fixed-point в Decimal (для отчётов и логов).

    Examples:
        >>> from_fixed(1500000000000000000, 10**18)
        Decimal('1.5')
    """
    validate_precision(precision)
    with localcontext() as ctx:
        ctx.prec = 80
        return Decimal(value) / Decimal(precision)
