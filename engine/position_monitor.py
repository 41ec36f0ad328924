# -*- coding: utf-8 -*-
"""
position_monitor.py

持仓监控 - 定时轮询交易所持仓，检测止盈/止损触发后的平仓

平仓判定: 本地有记录的持仓在交易所变为0。
已实现盈亏 = 平仓后余额 - 开仓前余额（含手续费），
再扣除同期其他标的已记录的平仓盈亏。
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from config.trading_config import TradingConfig
from engine.execution_engine import ExecutionEngine
from execution.base import OrderExecutor
from execution.errors import ExchangeError
from models.enums import NotifyCategory
from models.trading_models import AccountState, ClosedTrade, ExchangePosition, Position
from notification.base import Notifier

logger = logging.getLogger(__name__)

STOP_ORDER_TYPE = "STOP_MARKET"
TAKE_PROFIT_ORDER_TYPE = "TAKE_PROFIT_MARKET"


class PositionMonitor:
    """持仓监控"""

    def __init__(
        self,
        executor: OrderExecutor,
        account: AccountState,
        notifier: Notifier,
        engine: ExecutionEngine,
        config: TradingConfig,
    ):
        self.executor = executor
        self.account = account
        self.notifier = notifier
        self.engine = engine
        self.cfg = config

        self.tick_count = 0
        self.failed_polls = 0
        self.skipped_busy = 0

    async def tick(self) -> List[ClosedTrade]:
        """检查一次所有本地持仓，返回本次检测到的平仓"""
        self.tick_count += 1
        closed: List[ClosedTrade] = []

        for symbol in list(self.account.positions.keys()):
            lock = self.engine.lock_for(symbol)
            if lock.locked():
                # 开仓流程进行中，下一轮再查
                self.skipped_busy += 1
                logger.debug(f"[{symbol}] 执行中，本轮跳过监控")
                continue
            async with lock:
                trade = await self._check_symbol(symbol)
            if trade is not None:
                closed.append(trade)

        return closed

    def get_status(self) -> Dict[str, int]:
        return {
            "ticks": self.tick_count,
            "failed_polls": self.failed_polls,
            "skipped_busy": self.skipped_busy,
        }

    async def _check_symbol(self, symbol: str) -> Optional[ClosedTrade]:
        position = self.account.get_position(symbol)
        if position is None:
            return None

        try:
            live = await self.executor.get_position(symbol)
        except ExchangeError as e:
            self.failed_polls += 1
            logger.warning(f"[{symbol}] 查询持仓失败，下轮重试: {e}")
            return None

        if live is not None:
            self._on_live_position(position, live)
            return None

        return await self._on_position_closed(position)

    def _on_live_position(self, position: Position, live: ExchangePosition) -> None:
        if live.side != position.side:
            logger.error(
                f"[{position.symbol}] 交易所持仓方向 {live.side.name} 与本地记录 {position.side.name} 不一致"
            )
            self.notifier.notify(NotifyCategory.ERROR, {
                "合约": position.symbol,
                "错误": "交易所持仓方向与本地记录不一致，请人工核对",
                "本地": f"{position.side.name} {position.size}",
                "交易所": f"{live.side.name} {abs(live.quantity)}",
            })
            return

        position.unrealized_pnl = live.unrealized_pnl
        position.mark_price = live.mark_price
        if abs(live.unrealized_pnl) >= self.cfg.SIGNIFICANT_PNL_USD:
            logger.info(
                f"[{position.symbol}] 持仓 {position.side.name} {position.size} "
                f"标记价 {live.mark_price:.2f} 浮动盈亏 {live.unrealized_pnl:+.2f} USDT"
            )

    async def _on_position_closed(self, position: Position) -> Optional[ClosedTrade]:
        symbol = position.symbol
        try:
            balance = await self.executor.get_balance()
        except ExchangeError as e:
            # 保留持仓记录，下轮重新判定
            self.failed_polls += 1
            logger.warning(f"[{symbol}] 持仓已平但查询余额失败，下轮重试: {e}")
            return None

        pnl = self.account.pnl_since_entry(position, balance)
        trade = ClosedTrade(
            symbol=symbol,
            side=position.side,
            size=position.size,
            entry_price=position.entry_price,
            realized_pnl=pnl,
            balance_after=balance,
        )
        self.account.clear_position(symbol)
        self.account.record_close(trade)
        logger.info(f"[{symbol}] 持仓已平仓 {position.side.name}，盈亏 {pnl:+.2f} USDT，余额 ${balance:.2f}")

        try:
            await self.executor.cancel_all_orders(symbol)
        except ExchangeError as e:
            logger.warning(f"[{symbol}] 撤销剩余挂单失败: {e}")

        self.notifier.notify(NotifyCategory.CLOSE, {
            "合约": symbol,
            "方向": position.side.name,
            "数量": position.size,
            "开仓价": position.entry_price,
            "盈亏": f"{pnl:+.2f} USDT",
            "余额": f"${balance:.2f}",
        })
        return trade

    async def reconcile(self, symbols: List[str]) -> List[Position]:
        """启动时接管交易所上已有的持仓，交易所错误直接抛出"""
        adopted: List[Position] = []
        for live in await self.executor.get_open_positions():
            if live.symbol not in symbols:
                logger.warning(f"交易所存在非配置标的持仓 {live.symbol} {live.quantity}，不做管理")
                continue
            if self.account.get_position(live.symbol) is not None:
                continue

            orders = await self.executor.get_open_orders(live.symbol)
            stop_price = next((o.stop_price for o in orders if o.order_type == STOP_ORDER_TYPE), 0.0)
            target_price = next((o.stop_price for o in orders if o.order_type == TAKE_PROFIT_ORDER_TYPE), 0.0)

            position = Position(
                symbol=live.symbol,
                side=live.side,
                size=abs(live.quantity),
                entry_price=live.entry_price,
                leverage=live.leverage,
                take_profit_price=target_price,
                stop_loss_price=stop_price,
                unrealized_pnl=live.unrealized_pnl,
                mark_price=live.mark_price,
                entry_balance=self.account.balance,
                realized_at_entry=self.account.realized_total,
                protected=stop_price > 0,
            )
            self.account.open_position(position)
            adopted.append(position)
            logger.info(
                f"[{live.symbol}] 接管已有持仓: {position.side.name} {position.size} @ {position.entry_price:.2f} "
                f"TP={target_price} SL={stop_price}"
            )

            if not position.protected:
                logger.critical(f"[{live.symbol}] 已有持仓没有止损单!")
                self.notifier.notify(NotifyCategory.CRITICAL, {
                    "合约": live.symbol,
                    "方向": position.side.name,
                    "数量": position.size,
                    "开仓价": position.entry_price,
                    "错误": "启动时发现持仓没有止损单，请立即人工处理",
                })
        return adopted
