"""Read-only query selectors."""

from fx_trading.selectors.base import BaseSelector
from fx_trading.selectors.trade_selector import TradeSelector

__all__ = ["BaseSelector", "TradeSelector"]
