"""
Tests for CompanyDistribution

tokens_distributed = total_supply * pct / (100 - pct), доли по таблице.
"""

import pytest

from tokensale.core.domain import CompanyDistributionTable
from tokensale.core.errors import InvalidConfigError
from tokensale.sale.distribution import company_tokens, plan_distribution


@pytest.fixture
def table():
    return CompanyDistributionTable.from_arrays(["0xa", "0xb", "0xc"], [10, 40, 50], [0, 9, 18], [1, 18, 36])


class TestCompanyTokens:
    def test_company_share_of_final_supply(self):
        # 52% продано → компании 48% итогового supply
        assert company_tokens(520, 48) == 480

    def test_floors(self):
        assert company_tokens(100, 30) == 42

    @pytest.mark.parametrize("pct", [0, 100, 101])
    def test_percentage_bounds(self, pct):
        with pytest.raises(InvalidConfigError) as exc_info:
            company_tokens(100, pct)

        assert exc_info.value.field == "company_percentage"


class TestPlanDistribution:
    def test_plan(self, table):
        plan = plan_distribution(table, total_supply=8000, company_percentage=20)

        assert plan.tokens_distributed == 2000
        assert [(g.holder, g.amount) for g in plan.grants] == [("0xa", 200), ("0xb", 800), ("0xc", 1000)]
        assert [(g.vest_start_month, g.vest_end_month) for g in plan.grants] == [(0, 1), (9, 18), (18, 36)]

    def test_zero_shares_skipped(self, table):
        plan = plan_distribution(table, total_supply=16, company_percentage=20)

        assert plan.tokens_distributed == 4
        assert [(g.holder, g.amount) for g in plan.grants] == [("0xb", 1), ("0xc", 2)]

    def test_empty_supply(self, table):
        plan = plan_distribution(table, total_supply=0, company_percentage=48)

        assert plan.tokens_distributed == 0
        assert plan.grants == ()
