"""
VestingLedger — token ledger с линейным vesting

Хранит:
- balances: circulating (свободно переводимые) токены по адресам
- vesting entries: per-holder VestingEntry (vesteable / claimed / immediate)
- флаг завершения продажи и адрес зарегистрированного crowdsale

Supply:
    circulating_supply = Σ balances
    vesting_supply     = Σ (vesteable + immediate − claimed)
    total_supply       = circulating_supply + vesting_supply

claim() переносит токены из vesting supply в circulating supply,
total_supply при этом не меняется.

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. claimed_tokens ≤ vesteable_tokens + immediate_tokens, монотонно растёт
2. Окно vesting holder фиксируется первым grant и далее не меняется
3. Все проверки выполняются ДО записи: отказ не оставляет частичных мутаций
4. После finish mint/add_vesting запрещены
"""

from typing import Iterable

import structlog

from tokensale.core.domain.events import EventLog, TokensClaimed, Transfer
from tokensale.core.domain.units import ZERO_ADDRESS
from tokensale.core.domain.vesting import VestingEntry, VestingGrant
from tokensale.core.errors import (
    CrowdsaleAlreadySetError,
    InsufficientBalanceError,
    InvalidVestingWindowError,
    NothingToClaimError,
    NoTokensToVestError,
    NoVestingError,
    PreconditionError,
    SaleFinishedError,
    UnauthorizedError,
    VestingNotStartedError,
    VestingShapeConflictError,
)

logger = structlog.get_logger(__name__)


class VestingLedger:
    """
    Token ledger с per-holder vesting.

    Роли:
    - owner: mint, add_vesting, set_crowdsale
    - crowdsale (задаётся один раз): mint, add_vesting, add_immediate, finish_crowdsale
    """

    def __init__(self, owner: str, reference_timestamp: int, events: EventLog | None = None):
        """
        Args:
            owner: Адрес владельца
            reference_timestamp: Якорь vesting (UNIX-секунды), общий для всех holder
            events: Журнал событий (общий с crowdsale)
        """
        if not owner:
            raise ValueError("owner must be a non-empty address")

        self.owner = owner
        self.reference_timestamp = reference_timestamp
        self.events = events if events is not None else EventLog()

        self._balances: dict[str, int] = {}
        self._vesting: dict[str, VestingEntry] = {}
        self._crowdsale: str | None = None
        self._finished = False

    # =========================================================================
    # РОЛИ
    # =========================================================================

    @property
    def crowdsale(self) -> str | None:
        return self._crowdsale

    def is_crowdsale_finished(self) -> bool:
        return self._finished

    def _require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise UnauthorizedError(caller, "owner")

    def _require_privileged(self, caller: str) -> None:
        if caller != self.owner and caller != self._crowdsale:
            raise UnauthorizedError(caller, "owner_or_crowdsale")

    def _require_crowdsale(self, caller: str) -> None:
        if self._crowdsale is None or caller != self._crowdsale:
            raise UnauthorizedError(
                caller,
                "crowdsale",
                message="Sender is not set crowdsale",
                reason="not_crowdsale",
            )

    def _require_not_finished(self) -> None:
        if self._finished:
            raise SaleFinishedError()

    def set_crowdsale(self, caller: str, address: str) -> None:
        """
        Регистрация crowdsale (один раз, только owner).

        Raises:
            UnauthorizedError: caller не owner
            CrowdsaleAlreadySetError: crowdsale уже задан
            PreconditionError: пустой адрес (reason=invalid_crowdsale)
        """
        self._require_owner(caller)
        if self._crowdsale is not None:
            raise CrowdsaleAlreadySetError()
        if not address:
            raise PreconditionError("Invalid crowdsale", reason="invalid_crowdsale")

        self._crowdsale = address
        logger.info("crowdsale_set", crowdsale=address)

    def finish_crowdsale(self, caller: str) -> None:
        """
        Перевод ledger в состояние finished (только зарегистрированный crowdsale, один раз).

        После finish становятся доступны immediate_tokens и запрещены mint/add_vesting.
        """
        self._require_crowdsale(caller)
        self._require_not_finished()

        self._finished = True
        logger.info("ledger_finished", total_supply=self.total_supply())

    # =========================================================================
    # ЗАПРОСЫ
    # =========================================================================

    def balance_of(self, holder: str) -> int:
        """Circulating (переводимый) баланс."""
        return self._balances.get(holder, 0)

    def vesting_of(self, holder: str) -> VestingEntry | None:
        return self._vesting.get(holder)

    def vesting_balance_of(self, holder: str) -> int:
        """Токены holder, ещё не выведенные из vesting: vesteable + immediate − claimed."""
        entry = self._vesting.get(holder)
        return entry.unclaimed_tokens if entry is not None else 0

    def circulating_supply(self) -> int:
        return sum(self._balances.values())

    def vesting_supply(self) -> int:
        return sum(entry.unclaimed_tokens for entry in self._vesting.values())

    def total_supply(self) -> int:
        return self.circulating_supply() + self.vesting_supply()

    def claimable_of(self, holder: str, now: int) -> int:
        """Сколько holder может вывести в момент now (0 до завершения продажи)."""
        entry = self._vesting.get(holder)
        if entry is None or not self._finished:
            return 0
        return entry.claimable(self.reference_timestamp, now, include_immediate=True)

    # =========================================================================
    # MINT / TRANSFER
    # =========================================================================

    def mint(self, caller: str, to: str, amount: int) -> None:
        """Выпуск circulating токенов (owner или crowdsale, до finish)."""
        self._require_privileged(caller)
        self._require_not_finished()
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")

        self._balances[to] = self.balance_of(to) + amount
        self.events.emit(Transfer(from_address=ZERO_ADDRESS, to_address=to, value=amount))
        logger.info("tokens_minted", to=to, amount=amount)

    def transfer(self, sender: str, to: str, amount: int) -> None:
        """
        Перевод circulating токенов. Vesting-токены не переводимы.

        Raises:
            InsufficientBalanceError: Если баланс sender меньше amount
        """
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")

        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalanceError(sender, balance, amount)

        self._balances[sender] = balance - amount
        self._balances[to] = self.balance_of(to) + amount
        self.events.emit(Transfer(from_address=sender, to_address=to, value=amount))

    # =========================================================================
    # VESTING
    # =========================================================================

    def _staged_grant(
        self,
        staged: dict[str, VestingEntry],
        grant: VestingGrant,
    ) -> VestingEntry:
        """Проверка одного grant против текущей (или уже подготовленной) записи holder."""
        if grant.amount == 0:
            raise NoTokensToVestError(grant.holder)
        if grant.vest_end_month <= grant.vest_start_month:
            raise InvalidVestingWindowError(grant.vest_start_month, grant.vest_end_month)

        current = staged.get(grant.holder, self._vesting.get(grant.holder))
        if current is None:
            current = VestingEntry()

        if current.has_window:
            if grant.vest_start_month != current.vest_start_month:
                raise VestingShapeConflictError(
                    "months to start must equal to the current vesting",
                    details={"holder": grant.holder, "current": current.vest_start_month},
                )
            if grant.vest_end_month != current.vest_end_month:
                raise VestingShapeConflictError(
                    "months to finish must equal to the current vesting",
                    details={"holder": grant.holder, "current": current.vest_end_month},
                )

        return current.model_copy(
            update={
                "vesteable_tokens": current.vesteable_tokens + grant.amount,
                "vest_start_month": grant.vest_start_month,
                "vest_end_month": grant.vest_end_month,
            }
        )

    def validate_vesting_batch(self, caller: str, grants: Iterable[VestingGrant]) -> dict[str, VestingEntry]:
        """
        Проверка batch грантов без записи.

        Конфликты окна внутри batch учитываются: второй grant того же holder
        сравнивается с уже подготовленной записью.

        Returns:
            Подготовленные записи holder → VestingEntry
        """
        self._require_privileged(caller)
        self._require_not_finished()

        staged: dict[str, VestingEntry] = {}
        for grant in grants:
            staged[grant.holder] = self._staged_grant(staged, grant)
        return staged

    def add_vesting(
        self,
        caller: str,
        holder: str,
        amount: int,
        vest_start_month: int,
        vest_end_month: int,
    ) -> None:
        """
        Начисление токенов в vesting holder.

        Raises:
            UnauthorizedError: caller не owner и не crowdsale
            SaleFinishedError: продажа уже завершена
            NoTokensToVestError: amount == 0
            InvalidVestingWindowError: end ≤ start
            VestingShapeConflictError: окно отличается от текущего окна holder
        """
        grant = VestingGrant(
            holder=holder,
            amount=amount,
            vest_start_month=vest_start_month,
            vest_end_month=vest_end_month,
        )
        self.add_vesting_batch(caller, [grant])

    def add_vesting_batch(self, caller: str, grants: Iterable[VestingGrant]) -> None:
        """Атомарное начисление batch: либо все гранты, либо ни одного."""
        grants = list(grants)
        staged = self.validate_vesting_batch(caller, grants)
        self._vesting.update(staged)

        for grant in grants:
            logger.info(
                "vesting_added",
                holder=grant.holder,
                amount=grant.amount,
                vest_start_month=grant.vest_start_month,
                vest_end_month=grant.vest_end_month,
            )

    def add_immediate(self, caller: str, holder: str, amount: int) -> None:
        """
        Начисление токенов без задержки (покупка без скидки).

        Доступны к claim сразу после завершения продажи.
        """
        self._require_crowdsale(caller)
        self._require_not_finished()
        if amount <= 0:
            raise NoTokensToVestError(holder)

        current = self._vesting.get(holder) or VestingEntry()
        self._vesting[holder] = current.model_copy(
            update={"immediate_tokens": current.immediate_tokens + amount}
        )
        logger.info("immediate_tokens_added", holder=holder, amount=amount)

    def claim(self, holder: str, now: int) -> int:
        """
        Вывод разблокированных токенов в circulating balance.

        Args:
            holder: Адрес holder
            now: Текущее время (UNIX-секунды)

        Returns:
            Выведенное количество токенов

        Raises:
            NoVestingError: У holder нет записи vesting
            VestingNotStartedError: Продажа не завершена, или окно ещё не началось
            NothingToClaimError: Всё разблокированное уже выведено
        """
        entry = self._vesting.get(holder)
        if entry is None:
            raise NoVestingError(holder)
        if not self._finished:
            raise VestingNotStartedError(holder)

        claimable = entry.claimable(self.reference_timestamp, now, include_immediate=True)
        if claimable == 0:
            ref_start, _ = entry.window(self.reference_timestamp)
            if entry.has_window and now < ref_start:
                raise VestingNotStartedError(holder, starts_at=ref_start)
            raise NothingToClaimError(holder)

        self._vesting[holder] = entry.model_copy(update={"claimed_tokens": entry.claimed_tokens + claimable})
        self._balances[holder] = self.balance_of(holder) + claimable

        self.events.emit(TokensClaimed(user=holder, amount=claimable))
        self.events.emit(Transfer(from_address=ZERO_ADDRESS, to_address=holder, value=claimable))
        logger.info("tokens_claimed", holder=holder, amount=claimable, now=now)

        return claimable
