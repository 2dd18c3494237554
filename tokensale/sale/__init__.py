"""
Sale lifecycle: state machine, purchase orchestration, company distribution.
"""

from tokensale.sale.crowdsale import Crowdsale, PurchaseReceipt
from tokensale.sale.distribution import (
    DistributionPlan,
    company_tokens,
    plan_distribution,
    validate_company_percentage,
)
from tokensale.sale.state_machine import CrowdsaleStateMachine, SaleState, SaleStatusResult

__all__ = [
    # Crowdsale
    "Crowdsale",
    "PurchaseReceipt",
    # State machine
    "CrowdsaleStateMachine",
    "SaleState",
    "SaleStatusResult",
    # Company distribution
    "DistributionPlan",
    "company_tokens",
    "plan_distribution",
    "validate_company_percentage",
]
