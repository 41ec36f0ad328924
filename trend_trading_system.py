# -*- coding: utf-8 -*-
"""
trend_trading_system.py - 趋势动量交易系统

组件:
1. 行情/下单网关（Binance合约）
2. EMA+RSI 信号策略
3. 开仓执行状态机（每个标的一把锁）
4. 持仓监控（轮询检测止盈/止损平仓）
5. 通知（Telegram / 日志）
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from config.strategy_config import SignalConfig
from config.trading_config import TradingConfig
from engine.execution_engine import ExecutionEngine
from engine.position_monitor import PositionMonitor
from execution.base import OrderExecutor
from execution.errors import ExchangeError
from market.base import MarketDataFeed
from models.enums import CycleOutcome, NotifyCategory, SignalAction
from models.trading_models import (
    AccountState,
    ClosedTrade,
    CycleResult,
    TradeStats,
    TradingSignal,
)
from notification.base import Notifier
from strategy.indicators import compute_snapshot
from strategy.trend_momentum_strategy import TrendMomentumStrategy

logger = logging.getLogger(__name__)


class TrendTradingSystem:
    """趋势动量交易系统"""

    def __init__(
        self,
        feed: MarketDataFeed,
        executor: OrderExecutor,
        notifier: Notifier,
        trading_config: Optional[TradingConfig] = None,
        signal_config: Optional[SignalConfig] = None,
        timezone: str = "Europe/Prague",
    ):
        self.feed = feed
        self.executor = executor
        self.notifier = notifier
        self.cfg = trading_config or TradingConfig()
        self.signal_cfg = signal_config or SignalConfig()
        self.timezone = timezone

        self.account = AccountState()
        self.strategy = TrendMomentumStrategy(self.signal_cfg)
        self.engine = ExecutionEngine(feed, executor, self.account, notifier, self.cfg)
        self.monitor = PositionMonitor(executor, self.account, notifier, self.engine, self.cfg)

        self.started_at = datetime.now()
        self.last_signals: Dict[str, TradingSignal] = {}
        self.last_results: Dict[str, CycleResult] = {}

        logger.info(f"趋势交易系统已初始化: {self.cfg.SYMBOLS}")

    @property
    def symbols(self) -> List[str]:
        return self.cfg.SYMBOLS

    async def initialize(self) -> None:
        """连通性检查 → 保证金模式/杠杆 → 余额 → 接管已有持仓 → 启动通知"""
        await self.feed.ping()

        for symbol in self.symbols:
            await self.executor.set_margin_type(symbol, self.cfg.MARGIN_TYPE)
            await self.executor.set_leverage(symbol, self.signal_cfg.base_leverage)

        self.account.balance = await self.executor.get_balance()
        logger.info(f"账户余额: ${self.account.balance:.2f}")

        adopted = await self.monitor.reconcile(self.symbols)

        self.notifier.notify(NotifyCategory.STARTUP, {
            "合约": ", ".join(self.symbols),
            "余额": f"${self.account.balance:.2f}",
            "杠杆": f"{self.signal_cfg.base_leverage}x / {self.signal_cfg.high_leverage}x",
            "止盈": f"{self.cfg.TAKE_PROFIT_POINTS} 点",
            "止损": f"{self.cfg.STOP_LOSS_POINTS} 点",
            "开仓时间": f"每日 {self.cfg.ENTRY_TIME} ({self.timezone})",
            "接管持仓": len(adopted),
        })
        logger.info("系统初始化完成")

    async def evaluate(self, symbol: str) -> TradingSignal:
        """拉取K线 → 计算指标 → 生成信号；行情获取失败按数据不足处理"""
        try:
            closes = await self.feed.get_recent_closes(
                symbol, self.signal_cfg.candle_interval, self.signal_cfg.lookback
            )
        except ExchangeError as e:
            logger.error(f"[{symbol}] 获取K线失败: {e}")
            closes = []

        snapshot = compute_snapshot(closes, self.signal_cfg)
        signal = self.strategy.generate_signal(symbol, snapshot)
        self.last_signals[symbol] = signal
        return signal

    async def run_entry_cycle(self) -> List[CycleResult]:
        """定时开仓任务"""
        logger.info("=== 开始每日开仓检查 ===")
        results = []
        for symbol in self.symbols:
            signal = await self.evaluate(symbol)
            if not signal.is_actionable:
                result = CycleResult(symbol, CycleOutcome.NO_SIGNAL, self.engine.state_of(symbol), "无信号")
            else:
                result = await self.engine.execute(signal)
            self.last_results[symbol] = result
            results.append(result)
            logger.info(f"[{symbol}] 本轮结果: {result.outcome.name} {result.reason}")
        return results

    async def execute_test_trade(self, symbol: str, action: SignalAction) -> CycleResult:
        """手动测试: 用实时指标强制开指定方向的仓位（基础杠杆）"""
        if action == SignalAction.NONE:
            raise ValueError("测试交易必须指定方向")

        logger.info(f"[{symbol}] 测试交易: {action.name}")
        evaluated = await self.evaluate(symbol)
        snapshot = evaluated.snapshot
        signal = TradingSignal(
            symbol=symbol,
            action=action,
            leverage=self.signal_cfg.base_leverage,
            confidence=self.strategy.calculate_confidence(snapshot, action) if snapshot.sufficient else 0.0,
            snapshot=snapshot,
        )
        result = await self.engine.execute(signal)
        self.last_results[symbol] = result
        logger.info(f"[{symbol}] 测试交易结果: {result.outcome.name} {result.reason}")
        return result

    async def monitor_positions(self) -> List[ClosedTrade]:
        return await self.monitor.tick()

    async def send_daily_report(self) -> TradeStats:
        """发送日报并重置当日统计"""
        stats = self.account.reset_daily_stats()
        logger.info(
            f"日报: 交易 {stats.total_trades} 笔, 盈利 {stats.winning_trades} 笔, "
            f"胜率 {stats.win_rate:.1f}%, 总盈亏 {stats.total_pnl:+.2f} USDT"
        )
        self.notifier.notify(NotifyCategory.REPORT, {
            "日期": datetime.now().strftime("%Y-%m-%d"),
            "总交易": stats.total_trades,
            "盈利交易": stats.winning_trades,
            "胜率": f"{stats.win_rate:.1f}%",
            "总盈亏": f"{stats.total_pnl:+.2f} USDT",
            "当前余额": f"${self.account.balance:.2f}",
        })
        return stats

    def get_status(self) -> Dict[str, Any]:
        """获取系统状态"""
        positions = {
            symbol: {
                "side": p.side.name,
                "size": p.size,
                "entry_price": p.entry_price,
                "take_profit": p.take_profit_price,
                "stop_loss": p.stop_loss_price,
                "mark_price": p.mark_price,
                "unrealized_pnl": p.unrealized_pnl,
                "leverage": p.leverage,
                "protected": p.protected,
            }
            for symbol, p in self.account.positions.items()
        }
        stats = self.account.stats
        return {
            "timestamp": datetime.now().isoformat(),
            "started_at": self.started_at.isoformat(),
            "symbols": list(self.symbols),
            "balance": self.account.balance,
            "positions": positions,
            "daily_trades": stats.total_trades,
            "daily_wins": stats.winning_trades,
            "daily_win_rate": stats.win_rate,
            "daily_pnl": stats.total_pnl,
            "engine": self.engine.get_status(),
            "strategy": self.strategy.get_performance_metrics(),
            "monitor": self.monitor.get_status(),
            "notifications_sent": self.notifier.sent_count,
            "notifications_failed": self.notifier.failed_count,
        }

    def print_status(self) -> None:
        """打印系统状态"""
        status = self.get_status()

        print("\n" + "=" * 80)
        print("趋势交易系统状态")
        print("=" * 80)

        print(f"标的: {', '.join(status['symbols'])}")
        print(f"时间: {status['timestamp']}")
        print(f"余额: ${status['balance']:,.2f}")
        print()

        print("当日统计:")
        print(f"  交易: {status['daily_trades']} 笔 (盈利 {status['daily_wins']} 笔)")
        print(f"  胜率: {status['daily_win_rate']:.1f}%")
        print(f"  盈亏: {status['daily_pnl']:+,.2f} USDT")
        print()

        if not status["positions"]:
            print("持仓: 无")
        for symbol, p in status["positions"].items():
            protected = "✓" if p["protected"] else "✗ 无止损保护"
            print(f"\n  {symbol} {p['side']} {protected}")
            print(f"    数量: {p['size']} @ {p['entry_price']:,.2f} ({p['leverage']}x)")
            print(f"    止盈: {p['take_profit']:,.2f}  止损: {p['stop_loss']:,.2f}")
            print(f"    浮动盈亏: {p['unrealized_pnl']:+,.2f} USDT")

        engine = status["engine"]
        print()
        print(
            f"执行: 开仓 {engine['entries']} 次, 拒绝 {engine['rejected']} 次, "
            f"中止 {engine['aborted']} 次, 严重 {engine['critical']} 次"
        )
        monitor = status["monitor"]
        print(
            f"监控: 轮询 {monitor['ticks']} 次, 查询失败 {monitor['failed_polls']} 次, "
            f"执行中跳过 {monitor['skipped_busy']} 次"
        )
        print("=" * 80)

    async def shutdown(self) -> None:
        """等待进行中的开仓流程 → 发完通知 → 关闭连接"""
        logger.info("正在关闭交易系统...")
        await self.engine.stop()
        await self.notifier.close()
        await self.feed.close()
        await self.executor.close()
        logger.info("交易系统已关闭")
