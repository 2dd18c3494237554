"""
Contract Validation Module

Модуль для валидации JSON контрактов конфигурации продажи.
"""

from .validators import (
    CompanyDistributionValidator,
    ContractValidator,
    CrowdsaleConfigValidator,
    SchemaLoader,
    validate_company_distribution,
    validate_crowdsale_config,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "CrowdsaleConfigValidator",
    "CompanyDistributionValidator",
    # Functions
    "validate_crowdsale_config",
    "validate_company_distribution",
]
