"""
Configuration Loader (``fx_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the frozen dataclasses
of ``fx_config.schema``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Decimal limits are parsed from strings, never through float.
* Allowed currencies must be ISO 4217 codes.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the source
  data for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values (negative bounds, min > max, unknown currency, unknown
  keys)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from fx_config.schema import (
    FxTradingConfig,
    LoggingSettings,
    StorageSettings,
    ValidationSettings,
)
from fx_trading.db.types import InvalidCurrencyError, validate_currency


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration root must be a mapping: {path}")
    return data


def parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a decimal limit; YAML floats are read through their repr."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a decimal number, got {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a decimal number, got {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"{name} must be finite, got {value!r}")
    return result


def _reject_unknown_keys(data: dict[str, Any], cls: type, section: str) -> None:
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {section} setting(s): {sorted(unknown)}")


def parse_storage(data: dict[str, Any]) -> StorageSettings:
    """Parse the ``storage`` section."""
    _reject_unknown_keys(data, StorageSettings, "storage")
    defaults = StorageSettings()
    settings = StorageSettings(
        database_url=str(data.get("database_url", defaults.database_url)),
        echo=bool(data.get("echo", defaults.echo)),
        pool_size=int(data.get("pool_size", defaults.pool_size)),
        max_overflow=int(data.get("max_overflow", defaults.max_overflow)),
        pool_timeout=int(data.get("pool_timeout", defaults.pool_timeout)),
        busy_timeout_ms=int(data.get("busy_timeout_ms", defaults.busy_timeout_ms)),
        journal_mode=str(data.get("journal_mode", defaults.journal_mode)).upper(),
    )
    if settings.busy_timeout_ms <= 0:
        raise ValueError("storage.busy_timeout_ms must be positive")
    if settings.pool_size < 1:
        raise ValueError("storage.pool_size must be at least 1")
    return settings


def parse_validation(data: dict[str, Any]) -> ValidationSettings:
    """
    Parse the ``validation`` section.

    Raises:
        ValueError: if a bound is non-positive, a minimum exceeds its
            maximum, or a currency is not ISO 4217.
    """
    _reject_unknown_keys(data, ValidationSettings, "validation")
    defaults = ValidationSettings()

    def dec(key: str) -> Decimal:
        return parse_decimal(data.get(key, getattr(defaults, key)), key)

    currencies = data.get("allowed_currencies")
    if currencies is None:
        allowed = defaults.allowed_currencies
    else:
        if isinstance(currencies, str):
            currencies = [c for c in currencies.split(",") if c.strip()]
        try:
            allowed = frozenset(validate_currency(c) for c in currencies)
        except InvalidCurrencyError as exc:
            raise ValueError(f"allowed_currencies: {exc}") from exc
        if not allowed:
            raise ValueError("allowed_currencies must not be empty")

    settings = ValidationSettings(
        min_trade_amount=dec("min_trade_amount"),
        max_trade_amount=dec("max_trade_amount"),
        min_exchange_rate=dec("min_exchange_rate"),
        max_exchange_rate=dec("max_exchange_rate"),
        allowed_currencies=allowed,
        max_future_days=int(data.get("max_future_days", defaults.max_future_days)),
        max_past_days=int(data.get("max_past_days", defaults.max_past_days)),
        max_value_date_offset=int(
            data.get("max_value_date_offset", defaults.max_value_date_offset)
        ),
        enforce_status_transitions=bool(
            data.get("enforce_status_transitions", defaults.enforce_status_transitions)
        ),
        max_counterparty_length=int(
            data.get("max_counterparty_length", defaults.max_counterparty_length)
        ),
        max_trader_length=int(data.get("max_trader_length", defaults.max_trader_length)),
        max_notes_length=int(data.get("max_notes_length", defaults.max_notes_length)),
    )

    if settings.min_trade_amount <= 0 or settings.min_exchange_rate <= 0:
        raise ValueError("Minimum amount and rate must be positive")
    if settings.min_trade_amount > settings.max_trade_amount:
        raise ValueError("min_trade_amount exceeds max_trade_amount")
    if settings.min_exchange_rate > settings.max_exchange_rate:
        raise ValueError("min_exchange_rate exceeds max_exchange_rate")
    for key in ("max_future_days", "max_past_days", "max_value_date_offset"):
        if getattr(settings, key) < 0:
            raise ValueError(f"{key} must not be negative")
    return settings


def parse_logging(data: dict[str, Any]) -> LoggingSettings:
    _reject_unknown_keys(data, LoggingSettings, "logging")
    return LoggingSettings(level=str(data.get("level", "INFO")).upper())


def parse_config(
    data: dict[str, Any],
    source_path: str | None = None,
) -> FxTradingConfig:
    """Parse a whole configuration document."""
    unknown = set(data) - {"storage", "validation", "logging"}
    if unknown:
        raise ValueError(f"Unknown configuration section(s): {sorted(unknown)}")
    return FxTradingConfig(
        storage=parse_storage(data.get("storage") or {}),
        validation=parse_validation(data.get("validation") or {}),
        logging=parse_logging(data.get("logging") or {}),
        source_path=source_path,
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
