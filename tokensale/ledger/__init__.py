"""
Token ledger: circulating balances and per-holder vesting.
"""

from tokensale.ledger.token import VestingLedger

__all__ = [
    "VestingLedger",
]
