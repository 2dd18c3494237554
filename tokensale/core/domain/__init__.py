"""
Domain models and value objects.

Contains fundamental domain entities like DiscountTable, VestingEntry,
CompanyDistributionTable, events and unit conversions.
"""

from tokensale.core.domain.discount import DiscountRow, DiscountTable
from tokensale.core.domain.distribution import CompanyDistributionTable, DistributionRow
from tokensale.core.domain.events import (
    CrowdsaleFinished,
    EventLog,
    SaleEvent,
    TokensClaimed,
    TokensDelivered,
    TokensPurchased,
    Transfer,
)
from tokensale.core.domain.oracle import InMemoryPriceOracle, PriceOracle
from tokensale.core.domain.units import (
    MONTH_SECONDS,
    PERCENT_BASE,
    ZERO_ADDRESS,
    months_to_seconds,
    percentage_of,
    usd_to_wei,
    vesting_window,
    wei_to_usd,
)
from tokensale.core.domain.vesting import VestingEntry, VestingGrant

__all__ = [
    # Units module
    "MONTH_SECONDS",
    "PERCENT_BASE",
    "ZERO_ADDRESS",
    "months_to_seconds",
    "percentage_of",
    "usd_to_wei",
    "vesting_window",
    "wei_to_usd",
    # Oracle
    "PriceOracle",
    "InMemoryPriceOracle",
    # Discount table
    "DiscountRow",
    "DiscountTable",
    # Vesting
    "VestingEntry",
    "VestingGrant",
    # Company distribution
    "DistributionRow",
    "CompanyDistributionTable",
    # Events
    "CrowdsaleFinished",
    "EventLog",
    "SaleEvent",
    "TokensClaimed",
    "TokensDelivered",
    "TokensPurchased",
    "Transfer",
]
