# -*- coding: utf-8 -*-
"""
测试用的假行情/假交易所/记录型通知
"""

import asyncio
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from typing import Dict, List, Optional

from config.trading_config import TradingConfig
from execution.base import OrderExecutor
from market.base import MarketDataFeed
from models.enums import NotifyCategory, OrderSide, SignalAction
from models.market_data import SymbolRules, TechnicalSnapshot
from models.trading_models import ExchangePosition, OpenOrder, OrderFill, TradingSignal
from notification.base import Notifier

SYMBOL = "BTCUSDT"


def fast_config(**overrides) -> TradingConfig:
    """去掉等待时间的交易配置，默认用全部余额开仓"""
    params = dict(
        SYMBOLS=[SYMBOL],
        TRADE_AMOUNT=0.0,
        SETTLE_DELAY_SECONDS=0.0,
        BRACKET_RETRY_DELAY=0.0,
    )
    params.update(overrides)
    return TradingConfig(**params)


def long_snapshot(momentum: float = 45.0) -> TechnicalSnapshot:
    return TechnicalSnapshot(
        fast_trend=41980.0, mid_trend=41500.0, slow_trend=41000.0,
        momentum=momentum, price=42000.0, sample_count=200,
    )


def make_signal(action: SignalAction = SignalAction.LONG, leverage: int = 5, symbol: str = SYMBOL) -> TradingSignal:
    return TradingSignal(
        symbol=symbol,
        action=action,
        leverage=leverage,
        confidence=50.0,
        snapshot=long_snapshot(),
    )


class FakeFeed(MarketDataFeed):
    def __init__(self, closes: Optional[List[float]] = None, mark_price: float = 42000.0):
        self.closes = closes or []
        self.mark_price = mark_price
        self.closes_error: Optional[Exception] = None
        self.closed = False

    async def ping(self) -> bool:
        return True

    async def get_recent_closes(self, symbol: str, interval: str, count: int) -> List[float]:
        if self.closes_error:
            raise self.closes_error
        return list(self.closes[-count:])

    async def get_mark_price(self, symbol: str) -> float:
        return self.mark_price

    async def get_symbol_rules(self, symbol: str) -> SymbolRules:
        return SymbolRules(symbol=symbol, qty_step=0.001, min_qty=0.001, tick_size=0.1)

    async def close(self):
        self.closed = True


class FakeExecutor(OrderExecutor):
    """内存交易所

    fail[name] 是按调用顺序消费的错误列表，None表示该次调用正常。
    name: leverage / margin / market / stop / take_profit / cancel / positions / balance
    """

    def __init__(self, balance: float = 1000.0, fill_price: float = 42000.0):
        self.balance = balance
        self.fill_price = fill_price
        self.positions: Dict[str, ExchangePosition] = {}
        self.open_orders: Dict[str, List[OpenOrder]] = {}
        self.calls: List[tuple] = []
        self.fail: Dict[str, list] = {}
        self.entry_delay = 0.0
        self.order_seq = 0
        self.closed = False

    def _maybe_fail(self, name: str) -> None:
        errors = self.fail.get(name)
        if errors:
            error = errors.pop(0)
            if error is not None:
                raise error

    def _next_id(self) -> str:
        self.order_seq += 1
        return str(self.order_seq)

    def calls_of(self, name: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def set_leverage(self, symbol: str, leverage: int) -> None:
        self.calls.append(("leverage", symbol, leverage))
        self._maybe_fail("leverage")

    async def set_margin_type(self, symbol: str, margin_type: str) -> None:
        self.calls.append(("margin", symbol, margin_type))
        self._maybe_fail("margin")

    async def submit_market_order(self, symbol, side, quantity, reduce_only=False) -> OrderFill:
        self.calls.append(("market", symbol, side, quantity, reduce_only))
        self._maybe_fail("market")
        if self.entry_delay:
            await asyncio.sleep(self.entry_delay)

        if reduce_only:
            self.positions.pop(symbol, None)
        else:
            signed = quantity if side == OrderSide.BUY else -quantity
            self.positions[symbol] = ExchangePosition(
                symbol=symbol,
                quantity=signed,
                entry_price=self.fill_price,
                mark_price=self.fill_price,
                unrealized_pnl=0.0,
                leverage=5,
            )
        return OrderFill(self._next_id(), symbol, side, quantity, self.fill_price)

    async def submit_stop_order(self, symbol, side, quantity, trigger_price, reduce_only=True) -> str:
        self.calls.append(("stop", symbol, side, quantity, trigger_price))
        self._maybe_fail("stop")
        return self._add_order(symbol, side, "STOP_MARKET", quantity, trigger_price)

    async def submit_take_profit_order(self, symbol, side, quantity, trigger_price, reduce_only=True) -> str:
        self.calls.append(("take_profit", symbol, side, quantity, trigger_price))
        self._maybe_fail("take_profit")
        return self._add_order(symbol, side, "TAKE_PROFIT_MARKET", quantity, trigger_price)

    def _add_order(self, symbol, side, order_type, quantity, trigger_price) -> str:
        order_id = self._next_id()
        self.open_orders.setdefault(symbol, []).append(
            OpenOrder(order_id, symbol, side, order_type, quantity, trigger_price, True)
        )
        return order_id

    async def cancel_all_orders(self, symbol: str) -> None:
        self.calls.append(("cancel", symbol))
        self._maybe_fail("cancel")
        self.open_orders.pop(symbol, None)

    async def get_open_orders(self, symbol: str) -> List[OpenOrder]:
        return list(self.open_orders.get(symbol, []))

    async def get_open_positions(self) -> List[ExchangePosition]:
        self._maybe_fail("positions")
        return list(self.positions.values())

    async def get_balance(self) -> float:
        self._maybe_fail("balance")
        return self.balance

    async def close(self):
        self.closed = True


class RecordingNotifier(Notifier):
    def __init__(self):
        super().__init__()
        self.messages: List[tuple] = []
        self.closed = False

    async def send(self, category: NotifyCategory, payload) -> None:
        self.messages.append((category, payload))

    def categories(self) -> List[NotifyCategory]:
        return [c for c, _ in self.messages]

    async def close(self):
        await super().close()
        self.closed = True
