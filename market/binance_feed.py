# -*- coding: utf-8 -*-
"""
binance_feed.py - Binance合约行情（K线/标记价格/合约规则）
"""

import logging
from typing import Dict, List

from config.system_config import SystemConfig
from execution.binance_rest import BinanceRestClient
from execution.errors import ExchangeRejectionError
from models.market_data import SymbolRules
from .base import MarketDataFeed

logger = logging.getLogger(__name__)

KLINE_CLOSE_INDEX = 4
MAX_KLINE_LIMIT = 1500


class BinanceMarketFeed(MarketDataFeed):
    """Binance USDⓈ-M 行情"""

    def __init__(self, config: SystemConfig, rest: BinanceRestClient = None):
        self.config = config
        self.rest = rest or BinanceRestClient(config)
        self.rules_cache: Dict[str, SymbolRules] = {}

    async def ping(self) -> bool:
        await self.rest.public("GET", "/fapi/v1/ping")
        logger.info("已连接Binance合约API")
        return True

    async def get_recent_closes(self, symbol: str, interval: str, count: int) -> List[float]:
        limit = max(1, min(int(count), MAX_KLINE_LIMIT))
        klines = await self.rest.public(
            "GET",
            "/fapi/v1/klines",
            {"symbol": symbol, "interval": interval, "limit": limit},
        )
        closes = [float(k[KLINE_CLOSE_INDEX]) for k in klines]
        logger.info(f"[{symbol}] 获取 {len(closes)} 根 {interval} K线")
        return closes

    async def get_mark_price(self, symbol: str) -> float:
        data = await self.rest.public("GET", "/fapi/v1/premiumIndex", {"symbol": symbol})
        return float(data["markPrice"])

    async def get_symbol_rules(self, symbol: str) -> SymbolRules:
        cached = self.rules_cache.get(symbol)
        if cached:
            return cached

        info = await self.rest.public("GET", "/fapi/v1/exchangeInfo")
        for item in info.get("symbols", []):
            rules = self._parse_rules(item)
            if rules:
                self.rules_cache[rules.symbol] = rules

        if symbol not in self.rules_cache:
            raise ExchangeRejectionError(f"交易所不支持该合约: {symbol}")
        return self.rules_cache[symbol]

    @staticmethod
    def _parse_rules(item: dict):
        filters = {f.get("filterType"): f for f in item.get("filters", [])}
        lot = filters.get("LOT_SIZE")
        price = filters.get("PRICE_FILTER")
        if not lot or not price:
            return None
        return SymbolRules(
            symbol=item["symbol"],
            qty_step=float(lot["stepSize"]),
            min_qty=float(lot["minQty"]),
            tick_size=float(price["tickSize"]),
        )

    async def close(self):
        await self.rest.close()
