"""
JSON Schema Contract Validators

Модуль для валидации конфигурационных документов продажи согласно
формальным JSON Schema контрактам (Draft 2020-12).

Схемы (каталог schema/ внутри пакета):
- crowdsale_config.json: параметры продажи, таблица скидок, whitelist
- company_distribution.json: таблица распределения токенов компании
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator

import jsonschema
from jsonschema import Draft202012Validator, ValidationError

from tokensale.core.errors import ContractViolationError


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы поставляются вместе с пакетом в contracts/schema/.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'crowdsale_config')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема не проходит meta-validation
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}") from e

        self._schemas[schema_name] = schema
        return schema


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Проверка документа с отчётом сразу обо всех нарушениях.

        Raises:
            ContractViolationError: Если данные не соответствуют схеме
        """
        errors = [
            {"path": error.json_path, "message": error.message}
            for error in sorted(self.iter_errors(data), key=lambda e: list(map(str, e.absolute_path)))
        ]
        if errors:
            raise ContractViolationError(self.schema_name, errors)

    def iter_errors(self, data: Dict[str, Any]) -> Iterator[ValidationError]:
        """Итератор по всем ошибкам валидации."""
        return self.validator.iter_errors(data)


class CrowdsaleConfigValidator(ContractValidator):
    """Валидатор для crowdsale_config контракта."""

    def __init__(self):
        super().__init__("crowdsale_config")


class CompanyDistributionValidator(ContractValidator):
    """Валидатор для company_distribution контракта."""

    def __init__(self):
        super().__init__("company_distribution")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_crowdsale_config(data: Dict[str, Any]) -> None:
    """
    Валидация документа конфигурации продажи.

    Raises:
        ContractViolationError: Если данные не соответствуют схеме
    """
    CrowdsaleConfigValidator().validate(data)


def validate_company_distribution(data: Dict[str, Any]) -> None:
    """
    Валидация документа распределения токенов компании.

    Raises:
        ContractViolationError: Если данные не соответствуют схеме
    """
    CompanyDistributionValidator().validate(data)
