"""
Bootstrap -- wire configuration, storage and the trade service together.

    from fx_trading.bootstrap import build_trade_service
    service = build_trade_service()        # defaults / $FX_TRADING_CONFIG

Startup order matters: logging first (so engine setup is logged), then the
engines, then schema and triggers, then the ORM immutability listeners.
"""

from fx_config import FxTradingConfig, load_config
from fx_trading.db.engine import (
    create_tables,
    get_read_session_factory,
    get_session_factory,
    init_engine_from_url,
)
from fx_trading.db.immutability import register_immutability_listeners
from fx_trading.domain.clock import Clock, SystemClock
from fx_trading.logging_config import configure_logging, get_logger
from fx_trading.services.trade_service import TradeService

logger = get_logger("bootstrap")


def init_storage(config: FxTradingConfig) -> None:
    """Initialize engines from ``config.storage`` and prepare the schema."""
    storage = config.storage
    init_engine_from_url(
        storage.database_url,
        echo=storage.echo,
        pool_size=storage.pool_size,
        max_overflow=storage.max_overflow,
        pool_timeout=storage.pool_timeout,
        busy_timeout_ms=storage.busy_timeout_ms,
        journal_mode=storage.journal_mode,
    )
    create_tables(install_triggers=True)
    register_immutability_listeners()


def build_trade_service(
    config: FxTradingConfig | None = None,
    clock: Clock | None = None,
) -> TradeService:
    """
    Return a ready-to-use TradeService.

    Args:
        config: Loaded configuration; ``load_config()`` if omitted.
        clock: Time source; SystemClock if omitted.
    """
    config = config or load_config()
    configure_logging(level=config.logging.level)
    init_storage(config)

    logger.info(
        "trade_service_ready",
        extra={
            "config_source": config.source_path,
            "config_checksum": config.checksum,
        },
    )
    return TradeService(
        session_factory=get_session_factory(),
        read_session_factory=get_read_session_factory(),
        clock=clock or SystemClock(),
        settings=config.validation,
    )
