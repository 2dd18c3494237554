"""
Errors — Таксономия ошибок token sale engine

Три класса ошибок:
1. ConfigurationError — отклонение конфигурации при построении (таблицы скидок,
   окна vesting, таблица распределения компании)
2. PreconditionError — нарушение предусловий state-changing операций;
   поднимается ДО любой записи, частичных мутаций не бывает
3. FixedPointArithmeticError — деление на ноль, ln от неположительного числа

Каждая ошибка несёт машиночитаемый `reason` для различения причин отказа.
"""

from typing import Any


class TokenSaleError(Exception):
    """Базовое исключение для всех ошибок token sale engine."""

    reason: str = "token_sale_error"

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason
        self.details = details or {}


# =============================================================================
# ОШИБКИ КОНФИГУРАЦИИ
# =============================================================================


class ConfigurationError(TokenSaleError):
    """Конфигурация отклонена при построении."""

    reason = "invalid_configuration"


class ArrayLengthMismatchError(ConfigurationError):
    """Параллельные массивы конфигурации разной длины."""

    reason = "arrays_length_mismatch"

    def __init__(self, lengths: dict[str, int]):
        super().__init__(
            f"Arrays length mismatch: {lengths}",
            details={"lengths": lengths},
        )
        self.lengths = lengths


class UnorderedThresholdsError(ConfigurationError):
    """Пороги скидок не упорядочены строго по возрастанию."""

    reason = "unordered_thresholds"

    def __init__(self, index: int, previous: int, current: int):
        super().__init__(
            f"Unordered array: threshold[{index}]={current} <= threshold[{index - 1}]={previous}",
            details={"index": index, "previous": previous, "current": current},
        )


class InvalidDiscountRuleError(ConfigurationError):
    """Строка таблицы скидок нарушает инварианты (значение или окно vesting)."""

    def __init__(self, index: int, reason: str, message: str):
        super().__init__(
            f"Invalid discount rule. {message} (row {index})",
            reason=reason,
            details={"index": index},
        )
        self.index = index


class InvalidVestingWindowError(ConfigurationError):
    """Окно vesting нулевой или отрицательной длины."""

    reason = "no_time_to_vest"

    def __init__(self, start_month: int, end_month: int, message: str = "No time to vest"):
        super().__init__(
            f"{message}: start_month={start_month}, end_month={end_month}",
            details={"start_month": start_month, "end_month": end_month},
        )


class ContractViolationError(ConfigurationError):
    """Документ конфигурации не соответствует JSON Schema контракту."""

    reason = "contract_violation"

    def __init__(self, contract: str, errors: list[dict[str, Any]]):
        summary = "; ".join(f"{error['path']}: {error['message']}" for error in errors)
        super().__init__(
            f"Contract {contract} violated ({len(errors)} errors): {summary}",
            details={"contract": contract, "errors": errors},
        )
        self.contract = contract
        self.errors = errors


class InvalidDistributionError(ConfigurationError):
    """Таблица распределения токенов компании невалидна."""

    def __init__(self, reason: str, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, reason=reason, details=details)


class InvalidConfigError(ConfigurationError):
    """Параметры продажи (cap, время, процент компании) невалидны."""

    def __init__(self, field: str, message: str):
        super().__init__(
            f"Configuration error [{field}]: {message}",
            details={"field": field},
        )
        self.field = field


# =============================================================================
# ОШИБКИ ПРЕДУСЛОВИЙ
# =============================================================================


class PreconditionError(TokenSaleError):
    """Нарушено предусловие state-changing операции; состояние не изменено."""

    reason = "precondition_failed"


class SaleNotOpenError(PreconditionError):
    reason = "sale_not_open"


class SaleFinishedError(PreconditionError):
    reason = "sale_finished"

    def __init__(self, message: str = "Crowdsale has finished already"):
        super().__init__(message)


class SaleNotClosedError(PreconditionError):
    reason = "sale_not_closed"


class CapExceededError(PreconditionError):
    """Покупка превысила бы funding cap (частичного исполнения нет)."""

    reason = "cap_exceeded"

    def __init__(self, total_raised_usd: int, contribution_usd: int, funding_cap_usd: int):
        super().__init__(
            "The cap will be surpassed",
            details={
                "total_raised_usd": total_raised_usd,
                "contribution_usd": contribution_usd,
                "funding_cap_usd": funding_cap_usd,
            },
        )


class NotWhitelistedError(PreconditionError):
    reason = "not_whitelisted"

    def __init__(self, address: str):
        super().__init__(f"Address is not whitelisted: {address}", details={"address": address})
        self.address = address


class UnauthorizedError(PreconditionError):
    reason = "unauthorized"

    def __init__(self, caller: str, role: str, message: str | None = None, reason: str | None = None):
        super().__init__(
            message or f"Caller {caller} does not have the {role} role",
            reason=reason,
            details={"caller": caller, "role": role},
        )


class VestingShapeConflictError(PreconditionError):
    """Повторный grant с другим окном vesting для того же holder."""

    reason = "vesting_shape_conflict"


class VestingNotStartedError(PreconditionError):
    """Дата начала vesting ещё не наступлена (или продажа не завершена)."""

    reason = "vesting_not_started"

    def __init__(self, holder: str, starts_at: int | None = None):
        super().__init__(
            "Has not reached vesting start date",
            details={"holder": holder, "starts_at": starts_at},
        )


class NothingToClaimError(PreconditionError):
    reason = "nothing_to_claim"

    def __init__(self, holder: str):
        super().__init__(
            "The user has claimed all the tokens he can claim for now",
            details={"holder": holder},
        )


class NoVestingError(PreconditionError):
    reason = "no_vesting"

    def __init__(self, holder: str):
        super().__init__("User has not vesteable tokens", details={"holder": holder})


class NoTokensToVestError(PreconditionError):
    reason = "no_tokens_to_vest"

    def __init__(self, holder: str):
        super().__init__("No tokens to vest", details={"holder": holder})


class DistributionAlreadySetError(PreconditionError):
    reason = "distribution_already_set"

    def __init__(self) -> None:
        super().__init__("company distributions are already set")


class DistributionNotSetError(PreconditionError):
    reason = "distribution_not_set"

    def __init__(self) -> None:
        super().__init__("set the company distributions addresses before finish the crowdsale")


class CrowdsaleAlreadySetError(PreconditionError):
    reason = "crowdsale_already_set"

    def __init__(self) -> None:
        super().__init__("Crowdsale already set")


class InsufficientBalanceError(PreconditionError):
    reason = "insufficient_balance"

    def __init__(self, holder: str, balance: int, amount: int):
        super().__init__(
            f"Insufficient balance: {holder} has {balance}, needs {amount}",
            details={"holder": holder, "balance": balance, "amount": amount},
        )


# =============================================================================
# АРИФМЕТИЧЕСКИЕ ОШИБКИ
# =============================================================================


class FixedPointArithmeticError(TokenSaleError):
    """Операция fixed-point не определена на данных операндах."""

    reason = "arithmetic_error"


class DivisionByZeroError(FixedPointArithmeticError):
    reason = "division_by_zero"

    def __init__(self, numerator: int):
        super().__init__(f"Division by zero: {numerator} / 0", details={"numerator": numerator})


class LogarithmDomainError(FixedPointArithmeticError):
    reason = "logarithm_domain"

    def __init__(self, x: int):
        super().__init__(f"Logarithm of non-positive value: {x}", details={"x": x})
