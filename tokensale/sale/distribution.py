"""
CompanyDistribution — распределение токенов компании при finish

    tokens_distributed = total_supply * company_pct / (100 - company_pct)

После распределения доля компании в итоговом supply равна company_pct
(с точностью до округления вниз). Каждый получатель получает
tokens_distributed * p / 100 как vesting cohort со своим окном.
"""

from dataclasses import dataclass

import structlog

from tokensale.core.domain.distribution import CompanyDistributionTable
from tokensale.core.domain.units import PERCENT_BASE
from tokensale.core.domain.vesting import VestingGrant
from tokensale.core.errors import InvalidConfigError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DistributionPlan:
    """Расчёт распределения: сколько всего и кому."""

    total_supply_before: int
    company_percentage: int
    tokens_distributed: int
    grants: tuple[VestingGrant, ...]


def validate_company_percentage(company_percentage: int) -> None:
    """
    Raises:
        InvalidConfigError: Если процент вне (0, 100)
    """
    if not 0 < company_percentage < PERCENT_BASE:
        raise InvalidConfigError(
            "company_percentage",
            f"must be in (0, 100), got {company_percentage}",
        )


def company_tokens(total_supply: int, company_percentage: int) -> int:
    """floor(total_supply * company_pct / (100 - company_pct))."""
    validate_company_percentage(company_percentage)
    return total_supply * company_percentage // (PERCENT_BASE - company_percentage)


def plan_distribution(
    table: CompanyDistributionTable,
    total_supply: int,
    company_percentage: int,
) -> DistributionPlan:
    """
    Построение плана распределения (без записи в ledger).

    Получатели с нулевой долей (округление вниз) пропускаются.
    """
    tokens_distributed = company_tokens(total_supply, company_percentage)

    grants = tuple(
        VestingGrant(
            holder=row.address,
            amount=amount,
            vest_start_month=row.vest_start_month,
            vest_end_month=row.vest_end_month,
        )
        for row, amount in table.allocate(tokens_distributed)
        if amount > 0
    )

    logger.debug(
        "distribution_planned",
        total_supply=total_supply,
        company_percentage=company_percentage,
        tokens_distributed=tokens_distributed,
        recipients=len(grants),
    )

    return DistributionPlan(
        total_supply_before=total_supply,
        company_percentage=company_percentage,
        tokens_distributed=tokens_distributed,
        grants=grants,
    )
