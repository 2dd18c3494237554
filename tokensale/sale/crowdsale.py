"""
Crowdsale — оркестрация продажи токенов по bonding curve

Связывает:
- CrowdsaleStateMachine (PENDING → OPEN → CLOSED_NOT_FINISHED → FINISHED)
- PriceOracle (wei за 1 USD, читается один раз на покупку)
- bonding curve + DiscountTable (расчёт токенов)
- VestingLedger (начисление токенов, vesting, finish)
- CompanyDistributionTable (распределение токенов компании при finish)

Покупка (buy_tokens), порядок проверок:
    1. Продажа открыта
    2. sender и beneficiary в whitelist
    3. Взнос > 0, конверсия wei → USD по текущему курсу
    4. total_raised + contribution ≤ funding cap (без частичного исполнения)
    5. Выбор строки скидки, расчёт токенов
    6. Запись: vesting (скидка) или immediate (без скидки) в ledger
    7. total_raised += contribution, события

Все проверки выполняются до первой записи; ledger проверяет свои
предусловия до мутации, поэтому отказ не оставляет частичного состояния.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Sequence

import structlog

from tokensale.core.domain.discount import DiscountTable
from tokensale.core.domain.distribution import CompanyDistributionTable
from tokensale.core.domain.events import CrowdsaleFinished, TokensDelivered, TokensPurchased
from tokensale.core.domain.oracle import PriceOracle
from tokensale.core.domain.units import usd_to_wei, wei_to_usd
from tokensale.core.errors import (
    CapExceededError,
    DistributionAlreadySetError,
    DistributionNotSetError,
    InvalidConfigError,
    NotWhitelistedError,
    PreconditionError,
    UnauthorizedError,
)
from tokensale.core.math.bonding_curve import (
    DEFAULT_CURVE,
    CurveParameters,
    PurchaseQuote,
    price_at,
    quote_purchase,
)
from tokensale.core.math.fixed_point import PRECISION, validate_precision
from tokensale.ledger.token import VestingLedger
from tokensale.sale.distribution import plan_distribution, validate_company_percentage
from tokensale.sale.state_machine import CrowdsaleStateMachine, SaleState, SaleStatusResult

if TYPE_CHECKING:
    from tokensale.config import CrowdsaleConfig

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PurchaseReceipt:
    """Результат успешной покупки."""

    purchaser: str
    beneficiary: str
    wei_amount: int
    rate_wei_per_usd: int
    quote: PurchaseQuote

    # Окно vesting (0/0 если скидка не применялась и токены immediate)
    vested: bool
    vest_start_month: int
    vest_end_month: int

    @property
    def contribution_usd(self) -> int:
        return self.quote.contribution_usd

    @property
    def tokens(self) -> int:
        return self.quote.tokens


class Crowdsale:
    """
    Продажа токенов по логарифмической bonding curve.

    Роли:
    - owner: whitelist, таблица распределения компании
    - whitelisted адреса: покупка
    - любой: finish после закрытия продажи
    """

    def __init__(
        self,
        address: str,
        owner: str,
        wallet: str,
        ledger: VestingLedger,
        oracle: PriceOracle,
        opening_time: int,
        closing_time: int,
        funding_cap_usd: int,
        raised_in_presale_usd: int,
        company_percentage: int,
        discount_table: DiscountTable | None = None,
        precision: int = PRECISION,
        curve: CurveParameters = DEFAULT_CURVE,
    ):
        """
        Args:
            address: Адрес crowdsale (регистрируется в ledger через set_crowdsale)
            owner: Владелец
            wallet: Кошелёк, учитывающий полученные wei
            ledger: Token ledger
            oracle: Оракул курса (wei за 1 USD)
            opening_time: Начало продажи (UNIX-секунды)
            closing_time: Конец продажи (UNIX-секунды, включительно)
            funding_cap_usd: Cap в fixed-point USD, включая presale
            raised_in_presale_usd: Собрано в presale (fixed-point USD)
            company_percentage: Доля компании в итоговом supply, (0, 100)
            discount_table: Таблица скидок (None — без скидок)
            precision: Масштаб fixed-point
            curve: Параметры bonding curve
        """
        validate_precision(precision)
        validate_company_percentage(company_percentage)
        if not address:
            raise InvalidConfigError("address", "must be a non-empty address")
        if not wallet:
            raise InvalidConfigError("wallet", "must be a non-empty address")
        if funding_cap_usd <= 0:
            raise InvalidConfigError("funding_cap_usd", f"must be positive, got {funding_cap_usd}")
        if not 0 <= raised_in_presale_usd <= funding_cap_usd:
            raise InvalidConfigError(
                "raised_in_presale_usd",
                f"must be in [0, funding_cap_usd], got {raised_in_presale_usd}",
            )

        self.address = address
        self.owner = owner
        self.wallet = wallet
        self.ledger = ledger
        self.oracle = oracle
        self.funding_cap_usd = funding_cap_usd
        self.raised_in_presale_usd = raised_in_presale_usd
        self.company_percentage = company_percentage
        self.discount_table = discount_table if discount_table is not None else DiscountTable.empty()
        self.precision = precision
        self.curve = curve

        self.state_machine = CrowdsaleStateMachine(opening_time, closing_time, funding_cap_usd)

        self._total_raised_usd = raised_in_presale_usd
        self._wei_raised = 0
        self._whitelist: set[str] = set()
        self._distribution: CompanyDistributionTable | None = None
        self._finished = False

    @classmethod
    def from_config(cls, config: "CrowdsaleConfig", ledger: VestingLedger, oracle: PriceOracle) -> "Crowdsale":
        """Создание crowdsale из проверенной конфигурации."""
        return cls(
            address=config.crowdsale_address,
            owner=config.owner,
            wallet=config.wallet,
            ledger=ledger,
            oracle=oracle,
            opening_time=config.opening_time,
            closing_time=config.closing_time,
            funding_cap_usd=config.funding_cap_usd,
            raised_in_presale_usd=config.raised_in_presale_usd,
            company_percentage=config.company_percentage,
            discount_table=config.discount_table(),
            precision=config.precision,
        )

    @classmethod
    def deploy(cls, config: "CrowdsaleConfig", oracle: PriceOracle) -> "Crowdsale":
        """
        Полное развёртывание: ledger, crowdsale, регистрация crowdsale в ledger,
        whitelist и таблица распределения компании (если заданы в конфигурации).
        """
        ledger = VestingLedger(config.owner, config.vesting_reference_timestamp)
        crowdsale = cls.from_config(config, ledger, oracle)
        ledger.set_crowdsale(config.owner, crowdsale.address)

        if config.whitelist:
            crowdsale.add_whitelisted(config.owner, config.whitelist)

        if config.company_distribution:
            rows = config.company_distribution
            crowdsale.set_distribution_addresses(
                config.owner,
                [row.address for row in rows],
                [row.percentage for row in rows],
                [row.vest_start_month for row in rows],
                [row.vest_end_month for row in rows],
            )

        logger.info(
            "crowdsale_deployed",
            crowdsale=crowdsale.address,
            opening_time=config.opening_time,
            closing_time=config.closing_time,
            funding_cap_usd=config.funding_cap_usd,
        )
        return crowdsale

    # =========================================================================
    # ЗАПРОСЫ
    # =========================================================================

    @property
    def opening_time(self) -> int:
        return self.state_machine.opening_time

    @property
    def closing_time(self) -> int:
        return self.state_machine.closing_time

    @property
    def wei_raised(self) -> int:
        return self._wei_raised

    @property
    def distribution(self) -> CompanyDistributionTable | None:
        return self._distribution

    def total_raised_in_usd(self) -> int:
        """Собранная сумма (fixed-point USD, включая presale). Не зависит от курса."""
        return self._total_raised_usd

    def raised_by_sale_usd(self) -> int:
        """Абсцисса кривой: собрано продажей сверх presale."""
        return self._total_raised_usd - self.raised_in_presale_usd

    def price_of_next_token_in_usd(self) -> int:
        return price_at(self.raised_by_sale_usd(), self.precision, self.curve)

    def price_of_next_token_in_wei(self) -> int:
        return self.usd_to_wei(self.price_of_next_token_in_usd())

    def usd_to_wei(self, amount_usd: int) -> int:
        return usd_to_wei(amount_usd, self.oracle.read(), self.precision)

    def wei_to_usd(self, amount_wei: int) -> int:
        return wei_to_usd(amount_wei, self.oracle.read(), self.precision)

    def status(self, now: int) -> SaleStatusResult:
        return self.state_machine.evaluate(now, self._total_raised_usd, self._finished)

    def is_open(self, now: int) -> bool:
        return self.status(now).state == SaleState.OPEN

    def has_closed(self, now: int) -> bool:
        return self.state_machine.has_closed(now, self._total_raised_usd)

    def is_finished(self) -> bool:
        return self._finished

    def is_whitelisted(self, address: str) -> bool:
        return address in self._whitelist

    # =========================================================================
    # WHITELIST
    # =========================================================================

    def _require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise UnauthorizedError(caller, "owner")

    def add_whitelisted(self, caller: str, addresses: Iterable[str]) -> None:
        self._require_owner(caller)
        addresses = list(addresses)
        self._whitelist.update(addresses)
        logger.info("whitelist_added", count=len(addresses))

    def remove_whitelisted(self, caller: str, addresses: Iterable[str]) -> None:
        self._require_owner(caller)
        addresses = list(addresses)
        self._whitelist.difference_update(addresses)
        logger.info("whitelist_removed", count=len(addresses))

    # =========================================================================
    # ПОКУПКА
    # =========================================================================

    def quote(self, contribution_usd: int) -> tuple[PurchaseQuote, int, int]:
        """
        Расчёт покупки без записи.

        Returns:
            (PurchaseQuote, vest_start_month, vest_end_month); окно 0/0 без скидки
        """
        row = self.discount_table.select_row(contribution_usd)
        if row is None:
            quote = quote_purchase(
                self.raised_by_sale_usd(),
                contribution_usd,
                precision=self.precision,
                curve=self.curve,
            )
            return quote, 0, 0

        quote = quote_purchase(
            self.raised_by_sale_usd(),
            contribution_usd,
            discount_value=row.value,
            discount_is_percentage=row.is_percentage,
            precision=self.precision,
            curve=self.curve,
        )
        return quote, row.vest_start_month, row.vest_end_month

    def buy_tokens(self, sender: str, beneficiary: str, wei_amount: int, now: int) -> PurchaseReceipt:
        """
        Покупка токенов на wei_amount для beneficiary.

        Raises:
            SaleNotOpenError: Продажа ещё не началась
            SaleFinishedError: Продажа закрыта или завершена
            NotWhitelistedError: sender или beneficiary не в whitelist
            PreconditionError: Нулевой взнос (reason=zero_contribution)
            CapExceededError: Покупка превысила бы funding cap
            VestingShapeConflictError: Окно скидки отличается от текущего окна beneficiary
        """
        self.state_machine.require_purchase_allowed(now, self._total_raised_usd, self._finished)

        for address in (sender, beneficiary):
            if not self.is_whitelisted(address):
                raise NotWhitelistedError(address)

        if wei_amount <= 0:
            raise PreconditionError("Contribution must be positive", reason="zero_contribution")

        rate = self.oracle.read()
        contribution_usd = wei_to_usd(wei_amount, rate, self.precision)
        if contribution_usd == 0:
            raise PreconditionError("Contribution must be positive", reason="zero_contribution")

        if self._total_raised_usd + contribution_usd > self.funding_cap_usd:
            raise CapExceededError(self._total_raised_usd, contribution_usd, self.funding_cap_usd)

        quote, vest_start_month, vest_end_month = self.quote(contribution_usd)
        vested = vest_end_month > 0

        if vested:
            self.ledger.add_vesting(self.address, beneficiary, quote.tokens, vest_start_month, vest_end_month)
        else:
            self.ledger.add_immediate(self.address, beneficiary, quote.tokens)

        self._total_raised_usd += contribution_usd
        self._wei_raised += wei_amount

        self.ledger.events.emit(TokensPurchased(purchaser=sender, beneficiary=beneficiary, value=wei_amount))
        self.ledger.events.emit(
            TokensDelivered(
                wei_sent=wei_amount,
                token_amount=quote.tokens,
                discount_value_used=quote.discount_value,
                discount_is_percentage=quote.discount_is_percentage,
                months_to_start_vesting=vest_start_month,
                months_to_end_vesting=vest_end_month,
            )
        )

        logger.info(
            "tokens_purchased",
            purchaser=sender,
            beneficiary=beneficiary,
            wei_amount=wei_amount,
            rate_wei_per_usd=rate,
            contribution_usd=contribution_usd,
            tokens=quote.tokens,
            discount_value=quote.discount_value,
            total_raised_usd=self._total_raised_usd,
        )

        return PurchaseReceipt(
            purchaser=sender,
            beneficiary=beneficiary,
            wei_amount=wei_amount,
            rate_wei_per_usd=rate,
            quote=quote,
            vested=vested,
            vest_start_month=vest_start_month,
            vest_end_month=vest_end_month,
        )

    # =========================================================================
    # РАСПРЕДЕЛЕНИЕ И FINISH
    # =========================================================================

    def set_distribution_addresses(
        self,
        caller: str,
        addresses: Sequence[str],
        percentages: Sequence[int],
        vest_start_months: Sequence[int],
        vest_end_months: Sequence[int],
    ) -> None:
        """
        Таблица распределения токенов компании (только owner, один раз).

        Raises:
            UnauthorizedError: caller не owner
            DistributionAlreadySetError: Таблица уже задана
            InvalidDistributionError / ArrayLengthMismatchError: Таблица невалидна
        """
        self._require_owner(caller)
        if self._distribution is not None:
            raise DistributionAlreadySetError()

        self._distribution = CompanyDistributionTable.from_arrays(
            addresses, percentages, vest_start_months, vest_end_months
        )
        logger.info("distribution_set", recipients=len(self._distribution))

    def finish(self, caller: str, now: int) -> int:
        """
        Завершение продажи: распределение токенов компании и finish ledger.

        Вызывать может любой адрес, после closing_time или при достижении cap.

        Returns:
            tokens_distributed

        Raises:
            SaleFinishedError: finish уже выполнен
            SaleNotClosedError: Продажа ещё открыта или не началась
            DistributionNotSetError: Таблица распределения не задана
        """
        self.state_machine.require_finish_allowed(now, self._total_raised_usd, self._finished)
        if self._distribution is None:
            raise DistributionNotSetError()
        if self.ledger.crowdsale != self.address:
            raise UnauthorizedError(
                self.address,
                "crowdsale",
                message="Sender is not set crowdsale",
                reason="not_crowdsale",
            )

        plan = plan_distribution(self._distribution, self.ledger.total_supply(), self.company_percentage)

        self.ledger.validate_vesting_batch(self.address, plan.grants)
        self.ledger.add_vesting_batch(self.address, plan.grants)
        self.ledger.finish_crowdsale(self.address)
        self._finished = True

        self.ledger.events.emit(CrowdsaleFinished(tokens_distributed=plan.tokens_distributed))
        logger.info(
            "crowdsale_finished",
            caller=caller,
            total_raised_usd=self._total_raised_usd,
            wei_raised=self._wei_raised,
            tokens_distributed=plan.tokens_distributed,
            total_supply=self.ledger.total_supply(),
        )

        return plan.tokens_distributed
