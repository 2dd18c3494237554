"""
Configuration — параметры продажи

CrowdsaleConfig — неизменяемая Pydantic модель, все суммы в fixed-point.
Файлы конфигурации (YAML или JSON) хранят USD как десятичные строки
("37870000", "0.2"); загрузчик проверяет документ по JSON Schema
контракту crowdsale_config, затем переводит суммы в fixed-point.
"""

import json
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, Field, model_validator

from tokensale.core.contracts import validate_company_distribution, validate_crowdsale_config
from tokensale.core.domain.discount import DiscountRow, DiscountTable
from tokensale.core.domain.distribution import CompanyDistributionTable, DistributionRow
from tokensale.core.errors import InvalidConfigError
from tokensale.core.math.fixed_point import to_fixed

logger = structlog.get_logger(__name__)

DEFAULT_PRECISION_DECIMALS = 18


class CrowdsaleConfig(BaseModel):
    """Конфигурация продажи (construction-time, неизменяемая)."""

    # Адреса
    owner: str = Field(..., min_length=1)
    crowdsale_address: str = Field(..., min_length=1)
    wallet: str = Field(..., min_length=1, description="Кошелёк для полученных wei")
    token_address: str | None = Field(None, description="Адрес token ledger (информационно)")

    # Суммы (fixed-point USD)
    funding_cap_usd: int = Field(..., gt=0, description="Cap, включая presale")
    raised_in_presale_usd: int = Field(..., ge=0)

    # Время (UNIX-секунды)
    opening_time: int = Field(..., ge=0)
    closing_time: int = Field(..., ge=0)
    vesting_reference_timestamp: int = Field(..., ge=0, description="Якорь vesting для всех holder")

    company_percentage: int = Field(..., gt=0, lt=100)
    precision: int = Field(10**DEFAULT_PRECISION_DECIMALS, gt=0)

    discounts: tuple[DiscountRow, ...] = ()
    whitelist: tuple[str, ...] = ()
    company_distribution: tuple[DistributionRow, ...] = ()

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_sale_window(self) -> "CrowdsaleConfig":
        """closing_time ≥ opening_time, presale ≤ cap"""
        if self.closing_time < self.opening_time:
            raise ValueError(f"closing_time {self.closing_time} must be >= opening_time {self.opening_time}")
        if self.raised_in_presale_usd > self.funding_cap_usd:
            raise ValueError("raised_in_presale_usd must not exceed funding_cap_usd")
        return self

    def discount_table(self) -> DiscountTable:
        """Проверенная таблица скидок (ConfigurationError при нарушении инвариантов)."""
        return DiscountTable.from_rows(self.discounts)

    def distribution_table(self) -> CompanyDistributionTable | None:
        if not self.company_distribution:
            return None
        rows = self.company_distribution
        return CompanyDistributionTable.from_arrays(
            [row.address for row in rows],
            [row.percentage for row in rows],
            [row.vest_start_month for row in rows],
            [row.vest_end_month for row in rows],
        )


# =============================================================================
# ЗАГРУЗКА
# =============================================================================


def _read_document(path: Path) -> dict[str, Any]:
    """Чтение YAML или JSON документа."""
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    if not isinstance(data, dict):
        raise InvalidConfigError(str(path), "document root must be a mapping")
    return data


def _discount_row(raw: dict[str, Any], precision: int) -> DiscountRow:
    value = raw["value"]
    if raw["is_percentage"]:
        if not isinstance(value, int):
            raise InvalidConfigError("discounts.value", f"percentage must be an integer, got {value!r}")
    else:
        value = to_fixed(str(value), precision)

    return DiscountRow(
        threshold_usd=to_fixed(raw["threshold_usd"], precision),
        value=value,
        is_percentage=raw["is_percentage"],
        vest_start_month=raw["vest_start_month"],
        vest_end_month=raw["vest_end_month"],
    )


def crowdsale_config_from_dict(data: dict[str, Any]) -> CrowdsaleConfig:
    """
    Построение CrowdsaleConfig из документа конфигурации.

    Raises:
        ContractViolationError: Документ не соответствует контракту (все нарушения сразу)
        pydantic.ValidationError: Нарушены ограничения модели
        ConfigurationError: Таблица скидок или распределения невалидна
    """
    validate_crowdsale_config(data)

    precision = 10 ** data.get("precision_decimals", DEFAULT_PRECISION_DECIMALS)

    config = CrowdsaleConfig(
        owner=data["owner"],
        crowdsale_address=data["crowdsale_address"],
        wallet=data["wallet"],
        token_address=data.get("token_address"),
        funding_cap_usd=to_fixed(data["funding_cap_usd"], precision),
        raised_in_presale_usd=to_fixed(data["raised_in_presale_usd"], precision),
        opening_time=data["opening_time"],
        closing_time=data["closing_time"],
        vesting_reference_timestamp=data["vesting_reference_timestamp"],
        company_percentage=data["company_percentage"],
        precision=precision,
        discounts=tuple(_discount_row(raw, precision) for raw in data.get("discounts", [])),
        whitelist=tuple(data.get("whitelist", [])),
        company_distribution=tuple(DistributionRow(**raw) for raw in data.get("company_distribution", [])),
    )

    # Инварианты таблиц проверяются при загрузке, а не при первом использовании
    config.discount_table()
    config.distribution_table()

    return config


def load_crowdsale_config(path: str | Path) -> CrowdsaleConfig:
    """Загрузка конфигурации продажи из YAML/JSON файла."""
    path = Path(path)
    config = crowdsale_config_from_dict(_read_document(path))

    logger.info(
        "crowdsale_config_loaded",
        path=str(path),
        discounts=len(config.discounts),
        whitelist=len(config.whitelist),
        company_distribution=len(config.company_distribution),
    )
    return config


def load_company_distribution(path: str | Path) -> CompanyDistributionTable:
    """
    Загрузка таблицы распределения компании из YAML/JSON файла.

    Raises:
        ContractViolationError: Документ не соответствует контракту (все нарушения сразу)
        ConfigurationError: Таблица невалидна (сумма, окна)
    """
    path = Path(path)
    data = _read_document(path)
    validate_company_distribution(data)

    rows = data["rows"]
    return CompanyDistributionTable.from_arrays(
        [row["address"] for row in rows],
        [row["percentage"] for row in rows],
        [row["vest_start_month"] for row in rows],
        [row["vest_end_month"] for row in rows],
    )
