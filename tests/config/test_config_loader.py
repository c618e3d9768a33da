"""Tests for YAML configuration loading and validation."""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from fx_config import DEFAULTS_PATH, load_config
from fx_config.loader import compute_checksum, parse_config
from fx_config.schema import (
    DEFAULT_ALLOWED_CURRENCIES,
    StorageSettings,
    ValidationSettings,
)


@pytest.fixture(autouse=True)
def _no_config_env(monkeypatch):
    monkeypatch.delenv("FX_TRADING_CONFIG", raising=False)
    monkeypatch.delenv("FX_TRADING_DATABASE_URL", raising=False)


def _write(tmp_path: Path, data, name: str = "fx.yaml") -> Path:
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data) if not isinstance(data, str) else data)
    return path


class TestLoadConfig:

    def test_bundled_defaults_match_schema_defaults(self):
        config = load_config()
        assert config.source_path == str(DEFAULTS_PATH)
        assert len(config.checksum) == 64
        assert config.storage == StorageSettings()
        assert config.validation == ValidationSettings()
        assert config.logging.level == "INFO"

    def test_explicit_path(self, tmp_path):
        path = _write(tmp_path, {"validation": {"max_trade_amount": "500"}})
        config = load_config(path)
        assert config.source_path == str(path)
        assert config.validation.max_trade_amount == Decimal("500")
        # Unset keys keep their defaults
        assert config.validation.min_trade_amount == Decimal("0.01")

    def test_config_env_var(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {"logging": {"level": "debug"}})
        monkeypatch.setenv("FX_TRADING_CONFIG", str(path))
        config = load_config()
        assert config.source_path == str(path)
        assert config.logging.level == "DEBUG"

    def test_database_url_env_var_overrides_file(self, tmp_path, monkeypatch):
        path = _write(tmp_path, {"storage": {"database_url": "sqlite:///a.db"}})
        monkeypatch.setenv("FX_TRADING_DATABASE_URL", "sqlite:///b.db")
        config = load_config(path)
        assert config.storage.database_url == "sqlite:///b.db"
        assert config.storage.busy_timeout_ms == 5000

    def test_empty_file_is_all_defaults(self, tmp_path):
        config = load_config(_write(tmp_path, ""))
        assert config.validation == ValidationSettings()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(yaml.YAMLError):
            load_config(_write(tmp_path, "storage: [unclosed"))

    def test_non_mapping_root(self, tmp_path):
        with pytest.raises(ValueError, match="mapping"):
            load_config(_write(tmp_path, "- a\n- b\n"))


class TestParseConfig:

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="section"):
            parse_config({"metrics": {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="max_amount"):
            parse_config({"validation": {"max_amount": "5"}})

    def test_currency_list(self):
        config = parse_config({"validation": {"allowed_currencies": ["eur", "USD"]}})
        assert config.validation.allowed_currencies == frozenset({"EUR", "USD"})

    def test_currency_comma_string(self):
        config = parse_config({"validation": {"allowed_currencies": "EUR, GBP,USD"}})
        assert config.validation.allowed_currencies == frozenset({"EUR", "GBP", "USD"})

    def test_non_iso_currency_rejected(self):
        with pytest.raises(ValueError, match="allowed_currencies"):
            parse_config({"validation": {"allowed_currencies": ["EUR", "XYZ"]}})

    def test_default_currencies(self):
        config = parse_config({})
        assert config.validation.allowed_currencies == DEFAULT_ALLOWED_CURRENCIES

    def test_min_above_max_rejected(self):
        with pytest.raises(ValueError, match="min_trade_amount"):
            parse_config(
                {"validation": {"min_trade_amount": "100", "max_trade_amount": "10"}}
            )

    def test_rate_min_above_max_rejected(self):
        with pytest.raises(ValueError, match="min_exchange_rate"):
            parse_config(
                {"validation": {"min_exchange_rate": "5", "max_exchange_rate": "1"}}
            )

    def test_non_positive_minimum_rejected(self):
        with pytest.raises(ValueError, match="positive"):
            parse_config({"validation": {"min_trade_amount": "0"}})

    def test_negative_days_rejected(self):
        with pytest.raises(ValueError, match="max_past_days"):
            parse_config({"validation": {"max_past_days": -1}})

    def test_non_decimal_limit_rejected(self):
        with pytest.raises(ValueError, match="max_trade_amount"):
            parse_config({"validation": {"max_trade_amount": "lots"}})

    def test_float_limit_read_through_repr(self):
        config = parse_config({"validation": {"min_trade_amount": 0.1}})
        assert config.validation.min_trade_amount == Decimal("0.1")

    def test_busy_timeout_must_be_positive(self):
        with pytest.raises(ValueError, match="busy_timeout_ms"):
            parse_config({"storage": {"busy_timeout_ms": 0}})

    def test_journal_mode_uppercased(self):
        config = parse_config({"storage": {"journal_mode": "wal"}})
        assert config.storage.journal_mode == "WAL"


class TestChecksum:

    def test_deterministic_and_order_independent(self):
        a = {"validation": {"max_past_days": 30, "max_future_days": 1}}
        b = {"validation": {"max_future_days": 1, "max_past_days": 30}}
        assert compute_checksum(a) == compute_checksum(b)
        assert parse_config(a).checksum == parse_config(b).checksum

    def test_changes_with_content(self):
        assert compute_checksum({"logging": {"level": "INFO"}}) != compute_checksum(
            {"logging": {"level": "DEBUG"}}
        )
