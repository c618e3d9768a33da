"""
FX trading configuration (``fx_config``).

The single public entry point for runtime configuration is ``load_config()``:

    config = load_config()                    # $FX_TRADING_CONFIG or defaults
    config = load_config("etc/prod.yaml")     # explicit file

Resolution order for the file: explicit ``path`` argument, then the
``FX_TRADING_CONFIG`` environment variable, then the bundled
``defaults.yaml``.  ``FX_TRADING_DATABASE_URL`` overrides
``storage.database_url`` in every case.
"""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path

from fx_config.loader import load_yaml_file, parse_config
from fx_config.schema import (
    FxTradingConfig,
    LoggingSettings,
    StorageSettings,
    ValidationSettings,
)

__all__ = [
    "DEFAULTS_PATH",
    "FxTradingConfig",
    "LoggingSettings",
    "StorageSettings",
    "ValidationSettings",
    "load_config",
]

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_ENV_VAR = "FX_TRADING_CONFIG"
DATABASE_URL_ENV_VAR = "FX_TRADING_DATABASE_URL"


def load_config(path: str | Path | None = None) -> FxTradingConfig:
    """
    Load the active configuration.

    Raises:
        FileNotFoundError: if the resolved file does not exist.
        ValueError: if the file contains invalid settings.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or DEFAULTS_PATH
    path = Path(path)

    config = parse_config(load_yaml_file(path), source_path=str(path))

    database_url = os.environ.get(DATABASE_URL_ENV_VAR)
    if database_url:
        config = replace(
            config, storage=replace(config.storage, database_url=database_url)
        )
    return config
