"""
JSON Schema Contract Validators

Модуль для валидации сохранённых записей ledger по JSON Schema контрактам
(draft 2020-12) через библиотеку jsonschema.

Schemas:
- protocol_config.json
- stake_registry.json
- treasury.json
- exchange_rate.json
- reward_pool.json
"""

import json
from pathlib import Path
from typing import Any, Dict

import jsonschema
from jsonschema import Draft202012Validator

RECORD_NAMES = (
    "protocol_config",
    "stake_registry",
    "treasury",
    "exchange_rate",
    "reward_pool",
)


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы поставляются как package data в contracts/schema/ рядом с модулем.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Load (and cache) a schema by name, without the .json suffix.

        Raises:
            FileNotFoundError: If the schema file does not exist
            ValueError: If the file is not a valid draft 2020-12 schema
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


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """Validates one record type against its schema."""

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(self.schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: If data does not match the schema
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]):
        return self.validator.iter_errors(data)


class ProtocolConfigValidator(ContractValidator):
    def __init__(self):
        super().__init__("protocol_config")


class StakeRegistryValidator(ContractValidator):
    def __init__(self):
        super().__init__("stake_registry")


class TreasuryValidator(ContractValidator):
    def __init__(self):
        super().__init__("treasury")


class ExchangeRateValidator(ContractValidator):
    def __init__(self):
        super().__init__("exchange_rate")


class RewardPoolValidator(ContractValidator):
    def __init__(self):
        super().__init__("reward_pool")


_VALIDATORS = {
    "protocol_config": ProtocolConfigValidator,
    "stake_registry": StakeRegistryValidator,
    "treasury": TreasuryValidator,
    "exchange_rate": ExchangeRateValidator,
    "reward_pool": RewardPoolValidator,
}


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_protocol_config(data: Dict[str, Any]) -> None:
    ProtocolConfigValidator().validate(data)


def validate_stake_registry(data: Dict[str, Any]) -> None:
    StakeRegistryValidator().validate(data)


def validate_treasury(data: Dict[str, Any]) -> None:
    TreasuryValidator().validate(data)


def validate_exchange_rate(data: Dict[str, Any]) -> None:
    ExchangeRateValidator().validate(data)


def validate_reward_pool(data: Dict[str, Any]) -> None:
    RewardPoolValidator().validate(data)


def validate_record(record_name: str, data: Dict[str, Any]) -> None:
    """
    Validate a persisted record by name.

    Raises:
        KeyError: If record_name is not one of RECORD_NAMES
        ValidationError: If data does not match the schema
    """
    if record_name not in _VALIDATORS:
        raise KeyError(f"Unknown record: {record_name!r}")
    _VALIDATORS[record_name]().validate(data)
