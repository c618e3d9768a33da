"""
Configuration schema.

Typed, frozen views of the YAML configuration.  The loader parses YAML into
these types; the kernel only ever sees these dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

DEFAULT_ALLOWED_CURRENCIES = frozenset({
    "EUR", "USD", "GBP", "JPY", "CHF", "AUD", "CAD", "NZD", "SEK", "NOK", "DKK",
})


@dataclass(frozen=True)
class StorageSettings:
    """Database connection and lock-wait bounds."""

    database_url: str = "sqlite:///fx_trading.db"
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    busy_timeout_ms: int = 5000
    journal_mode: str = "WAL"


@dataclass(frozen=True)
class ValidationSettings:
    """Business limits applied to trade input."""

    min_trade_amount: Decimal = Decimal("0.01")
    max_trade_amount: Decimal = Decimal("10000000")
    min_exchange_rate: Decimal = Decimal("0.000001")
    max_exchange_rate: Decimal = Decimal("1000000")
    allowed_currencies: frozenset[str] = field(
        default_factory=lambda: DEFAULT_ALLOWED_CURRENCIES
    )
    # Trade date may not be later than today + max_future_days
    max_future_days: int = 0
    # Trade date may not be earlier than today - max_past_days
    max_past_days: int = 365
    # Value date may not be later than trade date + offset (spot is T+2)
    max_value_date_offset: int = 7
    enforce_status_transitions: bool = True
    max_counterparty_length: int = 100
    max_trader_length: int = 50
    max_notes_length: int = 500


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class FxTradingConfig:
    """The complete runtime configuration."""

    storage: StorageSettings = field(default_factory=StorageSettings)
    validation: ValidationSettings = field(default_factory=ValidationSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source_path: str | None = None
    checksum: str = ""
