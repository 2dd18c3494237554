"""
tokensale — deterministic bonding-curve token sale engine.

Packages:
- tokensale.core    : fixed-point math, bonding curve, domain models, contracts
- tokensale.ledger  : token ledger with linear vesting
- tokensale.sale    : crowdsale lifecycle, purchases, company distribution
"""

__version__ = "0.1.0"
