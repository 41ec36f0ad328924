from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional

from models.enums import (
    CycleOutcome,
    ExecutionState,
    OrderSide,
    PositionSide,
    SignalAction,
)
from models.market_data import TechnicalSnapshot


@dataclass(slots=True, frozen=True)
class TradingSignal:
    symbol: str
    action: SignalAction
    leverage: int
    confidence: float
    snapshot: TechnicalSnapshot
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def is_actionable(self) -> bool:
        return self.action != SignalAction.NONE


@dataclass(slots=True)
class Position:
    symbol: str
    side: PositionSide
    size: float
    entry_price: float
    leverage: int
    take_profit_price: float
    stop_loss_price: float
    unrealized_pnl: float = 0.0
    mark_price: float = 0.0
    entry_balance: float = 0.0
    # 读取entry_balance时账户累计已实现盈亏，用于扣除其他标的在持仓期间的盈亏
    realized_at_entry: float = 0.0
    protected: bool = True
    opened_at: datetime = field(default_factory=datetime.now)


@dataclass(slots=True, frozen=True)
class ExchangePosition:
    """交易所返回的持仓（quantity带符号，空头为负）"""
    symbol: str
    quantity: float
    entry_price: float
    mark_price: float
    unrealized_pnl: float
    leverage: int = 0

    @property
    def side(self) -> Optional[PositionSide]:
        if self.quantity > 0:
            return PositionSide.LONG
        if self.quantity < 0:
            return PositionSide.SHORT
        return None


@dataclass(slots=True, frozen=True)
class OrderFill:
    order_id: str
    symbol: str
    side: OrderSide
    executed_qty: float
    avg_price: float
    status: str = "FILLED"


@dataclass(slots=True, frozen=True)
class OpenOrder:
    order_id: str
    symbol: str
    side: OrderSide
    order_type: str
    quantity: float
    stop_price: float
    reduce_only: bool


@dataclass(slots=True, frozen=True)
class ClosedTrade:
    symbol: str
    side: PositionSide
    size: float
    entry_price: float
    realized_pnl: float
    balance_after: float
    closed_at: datetime = field(default_factory=datetime.now)


@dataclass(slots=True, frozen=True)
class CycleResult:
    symbol: str
    outcome: CycleOutcome
    state: ExecutionState
    reason: str = ""
    position: Optional[Position] = None


@dataclass(slots=True)
class TradeStats:
    """当日交易统计（日报用）"""
    total_trades: int = 0
    winning_trades: int = 0
    total_pnl: float = 0.0

    @property
    def win_rate(self) -> float:
        if self.total_trades == 0:
            return 0.0
        return self.winning_trades / self.total_trades * 100.0

    def record(self, pnl: float) -> None:
        self.total_trades += 1
        self.total_pnl += pnl
        if pnl > 0:
            self.winning_trades += 1


@dataclass
class AccountState:
    """账户状态 - 余额缓存 + 每个标的最多一个持仓

    只由执行引擎（开仓周期内）和持仓监控（检测到平仓时）写入，
    两者都在同一个标的锁内执行。
    """
    balance: float = 0.0
    positions: Dict[str, Position] = field(default_factory=dict)
    stats: TradeStats = field(default_factory=TradeStats)
    # 进程启动以来所有已记录平仓的盈亏之和（不随日报清零）
    realized_total: float = 0.0

    def get_position(self, symbol: str) -> Optional[Position]:
        return self.positions.get(symbol)

    def open_position(self, position: Position) -> None:
        existing = self.positions.get(position.symbol)
        if existing is not None:
            raise RuntimeError(f"{position.symbol} 已有持仓，不能重复开仓")
        self.positions[position.symbol] = position

    def clear_position(self, symbol: str) -> Optional[Position]:
        return self.positions.pop(symbol, None)

    def record_close(self, trade: ClosedTrade) -> None:
        self.balance = trade.balance_after
        self.stats.record(trade.realized_pnl)
        self.realized_total += trade.realized_pnl

    def pnl_since_entry(self, position: Position, balance: float) -> float:
        """余额差扣除其他标的在该持仓期间已记录的盈亏"""
        elsewhere = self.realized_total - position.realized_at_entry
        return balance - position.entry_balance - elsewhere

    def reset_daily_stats(self) -> TradeStats:
        stats = self.stats
        self.stats = TradeStats()
        return stats
