"""
Core math modules для tokensale

Fixed-point примитивы и bonding curve. Float в расчётах не используется.
"""

# Fixed-point primitives
from tokensale.core.math.fixed_point import (
    LN_WORKING_SCALE,
    PRECISION,
    div,
    from_fixed,
    ln,
    mul,
    to_fixed,
    validate_non_negative,
    validate_precision,
)

# Bonding curve
from tokensale.core.math.bonding_curve import (
    DEFAULT_CURVE,
    DEFAULT_LOG_BASE,
    DEFAULT_SCALE_USD,
    DEFAULT_SLOPE,
    MAX_PERCENTAGE_DISCOUNT,
    CurveParameters,
    PurchaseQuote,
    apply_percentage_discount,
    average_price,
    price_at,
    quote_purchase,
    tokens_for_price,
)

__all__ = [
    # Fixed-point: Constants
    "LN_WORKING_SCALE",
    "PRECISION",
    # Fixed-point: Functions
    "div",
    "from_fixed",
    "ln",
    "mul",
    "to_fixed",
    "validate_non_negative",
    "validate_precision",
    # Bonding curve: Constants
    "DEFAULT_CURVE",
    "DEFAULT_LOG_BASE",
    "DEFAULT_SCALE_USD",
    "DEFAULT_SLOPE",
    "MAX_PERCENTAGE_DISCOUNT",
    # Bonding curve: Types
    "CurveParameters",
    "PurchaseQuote",
    # Bonding curve: Functions
    "apply_percentage_discount",
    "average_price",
    "price_at",
    "quote_purchase",
    "tokens_for_price",
]
