"""
Tests for Crowdsale

Покрытие:
- Price rule: golden значения через buy_tokens (цена, токены)
- Скидки: процентная, фиксированная цена, vesting окно покупки
- Cap, whitelist, окно продажи, нулевой взнос
- Независимость total_raised от курса оракула
- Распределение компании и finish
- Полный цикл: покупка → finish → claim
"""

import pytest

from tokensale.core.domain import (
    MONTH_SECONDS,
    CrowdsaleFinished,
    DiscountTable,
    InMemoryPriceOracle,
    TokensDelivered,
    TokensPurchased,
)
from tokensale.core.errors import (
    ArrayLengthMismatchError,
    CapExceededError,
    DistributionAlreadySetError,
    DistributionNotSetError,
    InvalidConfigError,
    InvalidDistributionError,
    NotWhitelistedError,
    PreconditionError,
    SaleFinishedError,
    SaleNotClosedError,
    SaleNotOpenError,
    UnauthorizedError,
    VestingNotStartedError,
    VestingShapeConflictError,
)
from tokensale.core.math.fixed_point import PRECISION, to_fixed
from tokensale.ledger import VestingLedger
from tokensale.sale import Crowdsale, SaleState

OWNER = "0xowner"
CROWDSALE = "0xcrowdsale"
WALLET = "0xwallet"
USER = "0xuser"
ANOTHER_USER = "0xanother"
STRANGER = "0xstranger"
COMPANY = ["0xcompany_a", "0xcompany_b", "0xcompany_c"]

OPENING = 1_700_000_000
CLOSING = OPENING + 10_000
RATE = 5 * 10**15  # wei за 1 USD
PRESALE_USD = 3_870_000 * PRECISION
CAP_USD = 10**9 * PRECISION
MILLION_USD = 10**6 * PRECISION


def usd(amount) -> int:
    return to_fixed(str(amount))


def assert_close(actual: int, expected: int, relative: int = 10**6):
    assert abs(actual - expected) <= expected // relative, f"{actual} != {expected}"


def build_crowdsale(discount_table=None, funding_cap_usd=CAP_USD, company_percentage=48):
    ledger = VestingLedger(OWNER, reference_timestamp=OPENING)
    oracle = InMemoryPriceOracle(RATE)
    crowdsale = Crowdsale(
        address=CROWDSALE,
        owner=OWNER,
        wallet=WALLET,
        ledger=ledger,
        oracle=oracle,
        opening_time=OPENING,
        closing_time=CLOSING,
        funding_cap_usd=funding_cap_usd,
        raised_in_presale_usd=PRESALE_USD,
        company_percentage=company_percentage,
        discount_table=discount_table,
    )
    ledger.set_crowdsale(OWNER, CROWDSALE)
    crowdsale.add_whitelisted(OWNER, [OWNER, USER, ANOTHER_USER])
    return crowdsale


def discount_table():
    return DiscountTable.from_arrays(
        thresholds_usd=[usd(v) for v in (30_000, 50_000, 100_000, 150_000, 200_000, 300_000, 500_000)],
        values=[10, 17, 33, 50, 67, 71, usd("0.2")],
        is_percentage=[True, True, True, True, True, True, False],
        vest_start_months=[3] * 7,
        vest_end_months=[6] * 7,
    )


def set_company_distribution(crowdsale):
    crowdsale.set_distribution_addresses(OWNER, COMPANY, [10, 40, 50], [0, 9, 18], [1, 18, 36])


@pytest.fixture
def crowdsale():
    return build_crowdsale()


@pytest.fixture
def discounted_crowdsale():
    return build_crowdsale(discount_table())


# =============================================================================
# PRICE RULE
# =============================================================================


class TestPriceRule:
    """Golden значения кривой через полный путь покупки (wei → USD → токены)."""

    @pytest.mark.parametrize(
        "raised, expected_price, expected_tokens",
        [
            (0, "1", "747265.9086"),
            (1_000_000, "1.584240585", "562517.539"),
            (2_000_000, "1.937199982", "482425.7108"),
            (21_000_000, "3.722270416", "267192.1846"),
            (33_000_000, "4.11689819", "242122.3309"),
        ],
    )
    def test_price_and_tokens(self, crowdsale, raised, expected_price, expected_tokens):
        if raised:
            crowdsale.buy_tokens(OWNER, OWNER, crowdsale.usd_to_wei(raised * PRECISION), OPENING)

        assert_close(crowdsale.price_of_next_token_in_usd(), usd(expected_price))

        receipt = crowdsale.buy_tokens(USER, USER, crowdsale.usd_to_wei(MILLION_USD), OPENING + 1)
        assert_close(receipt.tokens, usd(expected_tokens))

    def test_price_in_wei(self, crowdsale):
        assert crowdsale.price_of_next_token_in_wei() == RATE

    def test_total_raised_includes_presale(self, crowdsale):
        assert crowdsale.total_raised_in_usd() == PRESALE_USD

        crowdsale.buy_tokens(USER, USER, crowdsale.usd_to_wei(MILLION_USD), OPENING)
        assert crowdsale.total_raised_in_usd() == PRESALE_USD + MILLION_USD
        assert crowdsale.raised_by_sale_usd() == MILLION_USD

    def test_total_raised_independent_of_later_rate(self, crowdsale):
        crowdsale.buy_tokens(USER, USER, 10**21, OPENING)
        raised = crowdsale.total_raised_in_usd()

        crowdsale.oracle.write(RATE * 3)

        assert crowdsale.total_raised_in_usd() == raised
        assert crowdsale.wei_raised == 10**21

    def test_oracle_rate_applied_per_purchase(self, crowdsale):
        first = crowdsale.buy_tokens(USER, USER, 10**18, OPENING)
        crowdsale.oracle.write(RATE * 2)
        second = crowdsale.buy_tokens(USER, USER, 10**18, OPENING)

        assert first.contribution_usd == 200 * PRECISION
        assert second.contribution_usd == 100 * PRECISION
        assert second.rate_wei_per_usd == RATE * 2


# =============================================================================
# DISCOUNTS
# =============================================================================


class TestDiscounts:
    def test_no_discount_below_first_threshold(self, discounted_crowdsale):
        receipt = discounted_crowdsale.buy_tokens(USER, USER, discounted_crowdsale.usd_to_wei(usd(29_999)), OPENING)

        assert not receipt.vested
        entry = discounted_crowdsale.ledger.vesting_of(USER)
        assert entry.immediate_tokens == receipt.tokens
        assert entry.vesteable_tokens == 0

        delivered = discounted_crowdsale.ledger.events.of_type(TokensDelivered)[-1]
        assert delivered.discount_value_used == 0
        assert delivered.discount_is_percentage is False
        assert delivered.months_to_start_vesting == 0
        assert delivered.months_to_end_vesting == 0

    def test_percentage_discount_33(self, discounted_crowdsale):
        wei = discounted_crowdsale.usd_to_wei(usd(100_010))
        receipt = discounted_crowdsale.buy_tokens(USER, USER, wei, OPENING)

        assert_close(receipt.tokens, usd(96157) * 100 // 67, relative=10**5)
        assert receipt.vested
        assert (receipt.vest_start_month, receipt.vest_end_month) == (3, 6)

        entry = discounted_crowdsale.ledger.vesting_of(USER)
        assert entry.vesteable_tokens == receipt.tokens
        assert discounted_crowdsale.ledger.balance_of(USER) == 0

        purchased, delivered = list(discounted_crowdsale.ledger.events)[-2:]
        assert purchased == TokensPurchased(purchaser=USER, beneficiary=USER, value=wei)
        assert delivered == TokensDelivered(
            wei_sent=wei,
            token_amount=receipt.tokens,
            discount_value_used=33,
            discount_is_percentage=True,
            months_to_start_vesting=3,
            months_to_end_vesting=6,
        )

    def test_percentage_discount_71(self, discounted_crowdsale):
        discounted_crowdsale.buy_tokens(OWNER, OWNER, discounted_crowdsale.usd_to_wei(usd(33_000_000)), OPENING)

        receipt = discounted_crowdsale.buy_tokens(
            USER, USER, discounted_crowdsale.usd_to_wei(usd(300_030)), OPENING
        )

        assert_close(receipt.tokens, usd(72807) * 100 // 29, relative=10**5)

    def test_fixed_price_discount(self, discounted_crowdsale):
        discounted_crowdsale.buy_tokens(OWNER, OWNER, discounted_crowdsale.usd_to_wei(usd(2_000_000)), OPENING)

        receipt = discounted_crowdsale.buy_tokens(USER, USER, discounted_crowdsale.usd_to_wei(MILLION_USD), OPENING)

        assert receipt.tokens == 5_000_000 * PRECISION
        assert receipt.quote.discount_is_percentage is False

    def test_second_purchase_with_different_window_rejected(self):
        table = DiscountTable.from_arrays(
            [usd(1000), usd(2000)], [10, 20], [True, True], [3, 4], [6, 8]
        )
        crowdsale = build_crowdsale(table)
        crowdsale.buy_tokens(USER, USER, crowdsale.usd_to_wei(usd(1000)), OPENING)
        raised = crowdsale.total_raised_in_usd()

        with pytest.raises(VestingShapeConflictError):
            crowdsale.buy_tokens(USER, USER, crowdsale.usd_to_wei(usd(2000)), OPENING)

        assert crowdsale.total_raised_in_usd() == raised


# =============================================================================
# PRECONDITIONS
# =============================================================================


class TestPurchasePreconditions:
    def test_before_opening(self, crowdsale):
        with pytest.raises(SaleNotOpenError):
            crowdsale.buy_tokens(USER, USER, 10**18, OPENING - 1)

    def test_after_closing(self, crowdsale):
        with pytest.raises(SaleFinishedError):
            crowdsale.buy_tokens(USER, USER, 10**18, CLOSING + 1)

    def test_sender_not_whitelisted(self, crowdsale):
        with pytest.raises(NotWhitelistedError) as exc_info:
            crowdsale.buy_tokens(STRANGER, USER, 10**18, OPENING)

        assert exc_info.value.address == STRANGER

    def test_beneficiary_not_whitelisted(self, crowdsale):
        with pytest.raises(NotWhitelistedError) as exc_info:
            crowdsale.buy_tokens(USER, STRANGER, 10**18, OPENING)

        assert exc_info.value.address == STRANGER

    def test_whitelist_management(self, crowdsale):
        assert crowdsale.is_whitelisted(USER)
        crowdsale.remove_whitelisted(OWNER, [USER])
        assert not crowdsale.is_whitelisted(USER)

        with pytest.raises(UnauthorizedError):
            crowdsale.add_whitelisted(USER, [USER])

    def test_zero_contribution(self, crowdsale):
        with pytest.raises(PreconditionError) as exc_info:
            crowdsale.buy_tokens(USER, USER, 0, OPENING)

        assert exc_info.value.reason == "zero_contribution"

    def test_cap_exceeded_leaves_state_unchanged(self):
        crowdsale = build_crowdsale(funding_cap_usd=PRESALE_USD + MILLION_USD)
        events_before = len(crowdsale.ledger.events)

        with pytest.raises(CapExceededError) as exc_info:
            crowdsale.buy_tokens(USER, USER, crowdsale.usd_to_wei(MILLION_USD + PRECISION), OPENING)

        assert str(exc_info.value) == "The cap will be surpassed"
        assert crowdsale.total_raised_in_usd() == PRESALE_USD
        assert crowdsale.wei_raised == 0
        assert crowdsale.ledger.vesting_of(USER) is None
        assert len(crowdsale.ledger.events) == events_before

    def test_reaching_cap_closes_sale(self):
        crowdsale = build_crowdsale(funding_cap_usd=PRESALE_USD + MILLION_USD)
        crowdsale.buy_tokens(USER, USER, crowdsale.usd_to_wei(MILLION_USD), OPENING)

        assert crowdsale.total_raised_in_usd() == crowdsale.funding_cap_usd
        assert crowdsale.has_closed(OPENING)
        assert not crowdsale.is_open(OPENING)

        with pytest.raises(SaleFinishedError):
            crowdsale.buy_tokens(USER, USER, 10**18, OPENING)

    def test_is_open(self, crowdsale):
        assert not crowdsale.is_open(OPENING - 1)
        assert crowdsale.is_open(OPENING)
        assert crowdsale.is_open(CLOSING)
        assert not crowdsale.is_open(CLOSING + 1)

    @pytest.mark.parametrize("pct", [0, 100])
    def test_invalid_company_percentage(self, pct):
        with pytest.raises(InvalidConfigError):
            build_crowdsale(company_percentage=pct)


# =============================================================================
# COMPANY DISTRIBUTION & FINISH
# =============================================================================


class TestDistributionAndFinish:
    def test_set_distribution_once(self, crowdsale):
        set_company_distribution(crowdsale)

        with pytest.raises(DistributionAlreadySetError) as exc_info:
            set_company_distribution(crowdsale)

        assert str(exc_info.value) == "company distributions are already set"

    def test_set_distribution_only_owner(self, crowdsale):
        with pytest.raises(UnauthorizedError):
            crowdsale.set_distribution_addresses(USER, COMPANY, [10, 40, 50], [0, 9, 18], [1, 18, 36])

    def test_set_distribution_invalid(self, crowdsale):
        with pytest.raises(InvalidDistributionError):
            crowdsale.set_distribution_addresses(OWNER, COMPANY, [10, 40, 40], [0, 9, 18], [1, 18, 36])
        with pytest.raises(ArrayLengthMismatchError):
            crowdsale.set_distribution_addresses(OWNER, COMPANY, [10, 90], [0, 9, 18], [1, 18, 36])

        assert crowdsale.distribution is None

    def test_set_distribution_rejects_repeated_address(self, crowdsale):
        with pytest.raises(InvalidDistributionError) as exc_info:
            crowdsale.set_distribution_addresses(OWNER, ["0xa", "0xa"], [50, 50], [0, 3], [1, 6])

        assert exc_info.value.reason == "duplicate_address"
        assert crowdsale.distribution is None

        # Таблица не зафиксирована: корректная таблица принимается, finish проходит
        crowdsale.set_distribution_addresses(OWNER, ["0xa", "0xb"], [50, 50], [0, 3], [1, 6])
        crowdsale.buy_tokens(USER, USER, crowdsale.usd_to_wei(MILLION_USD), OPENING)
        crowdsale.finish(STRANGER, CLOSING + 1)

        assert crowdsale.is_finished()
        assert crowdsale.ledger.vesting_of("0xa").vest_end_month == 1

    def test_finish_before_close(self, crowdsale):
        set_company_distribution(crowdsale)

        with pytest.raises(SaleNotClosedError):
            crowdsale.finish(STRANGER, OPENING)

    def test_finish_without_distribution(self, crowdsale):
        with pytest.raises(DistributionNotSetError):
            crowdsale.finish(STRANGER, CLOSING + 1)

        assert not crowdsale.is_finished()

    def test_finish_twice(self, crowdsale):
        set_company_distribution(crowdsale)
        crowdsale.finish(STRANGER, CLOSING + 1)

        with pytest.raises(SaleFinishedError):
            crowdsale.finish(STRANGER, CLOSING + 2)

        assert crowdsale.status(CLOSING + 2).state == SaleState.FINISHED

    def test_company_split(self):
        crowdsale = build_crowdsale(company_percentage=20)
        set_company_distribution(crowdsale)
        crowdsale.buy_tokens(USER, USER, crowdsale.usd_to_wei(MILLION_USD), OPENING)

        supply_before = crowdsale.ledger.total_supply()
        tokens_distributed = crowdsale.finish(STRANGER, CLOSING + 1)

        assert tokens_distributed == supply_before * 20 // 80
        shares = [crowdsale.ledger.vesting_balance_of(address) for address in COMPANY]
        assert shares == [tokens_distributed * p // 100 for p in (10, 40, 50)]
        assert crowdsale.ledger.total_supply() == supply_before + sum(shares)
        assert crowdsale.ledger.is_crowdsale_finished()

        entry = crowdsale.ledger.vesting_of(COMPANY[1])
        assert (entry.vest_start_month, entry.vest_end_month) == (9, 18)

        assert crowdsale.ledger.events.last() == CrowdsaleFinished(tokens_distributed=tokens_distributed)

    def test_finish_after_cap_reached_before_closing(self):
        crowdsale = build_crowdsale(funding_cap_usd=PRESALE_USD + MILLION_USD)
        set_company_distribution(crowdsale)
        crowdsale.buy_tokens(USER, USER, crowdsale.usd_to_wei(MILLION_USD), OPENING)

        crowdsale.finish(STRANGER, OPENING + 1)
        assert crowdsale.is_finished()

    def test_finish_atomic_on_company_window_conflict(self, discounted_crowdsale):
        # COMPANY[0] уже имеет окно 3..6 от покупки со скидкой
        discounted_crowdsale.add_whitelisted(OWNER, [COMPANY[0]])
        discounted_crowdsale.buy_tokens(COMPANY[0], COMPANY[0], discounted_crowdsale.usd_to_wei(usd(30_000)), OPENING)
        set_company_distribution(discounted_crowdsale)
        supply_before = discounted_crowdsale.ledger.total_supply()

        with pytest.raises(VestingShapeConflictError):
            discounted_crowdsale.finish(STRANGER, CLOSING + 1)

        assert not discounted_crowdsale.is_finished()
        assert not discounted_crowdsale.ledger.is_crowdsale_finished()
        assert discounted_crowdsale.ledger.total_supply() == supply_before


# =============================================================================
# FULL LIFECYCLE
# =============================================================================


class TestLifecycle:
    def test_buy_finish_claim(self, discounted_crowdsale):
        sale = discounted_crowdsale
        ledger = sale.ledger
        set_company_distribution(sale)

        plain = sale.buy_tokens(USER, USER, sale.usd_to_wei(usd(1000)), OPENING)
        vested = sale.buy_tokens(ANOTHER_USER, ANOTHER_USER, sale.usd_to_wei(usd(100_000)), OPENING + 5)

        with pytest.raises(VestingNotStartedError):
            ledger.claim(USER, OPENING + 10)

        sale.finish(STRANGER, CLOSING + 1)

        assert ledger.claim(USER, CLOSING + 2) == plain.tokens
        assert ledger.balance_of(USER) == plain.tokens

        with pytest.raises(VestingNotStartedError):
            ledger.claim(ANOTHER_USER, OPENING + 2 * MONTH_SECONDS)

        half = ledger.claim(ANOTHER_USER, OPENING + 4 * MONTH_SECONDS + MONTH_SECONDS // 2)
        assert half == vested.tokens // 2
        rest = ledger.claim(ANOTHER_USER, OPENING + 7 * MONTH_SECONDS)
        assert half + rest == vested.tokens

        # Компания A: окно 0..1
        company_claim = ledger.claim(COMPANY[0], OPENING + MONTH_SECONDS)
        assert company_claim == ledger.vesting_of(COMPANY[0]).vesteable_tokens
