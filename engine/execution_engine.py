# -*- coding: utf-8 -*-
"""
execution_engine.py

开仓执行状态机

IDLE → FLATTENING → SIZING → ENTRY_SUBMITTED → BRACKET_PLACING → OPEN → IDLE
任一步骤不可恢复失败 → ABORTED → IDLE

同一标的的整个流程持有该标的的锁；锁被占用或已有持仓时新信号直接拒绝，不排队。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from config.trading_config import TradingConfig
from engine.position_sizer import SizingError, calculate_quantity, sizing_basis
from execution.base import OrderExecutor
from execution.errors import ExchangeError, ExchangeTransientError
from market.base import MarketDataFeed
from models.enums import (
    CycleOutcome,
    ExecutionState,
    NotifyCategory,
    PositionSide,
)
from models.trading_models import AccountState, CycleResult, Position, TradingSignal
from notification.base import Notifier
from utils.math_utils import round_to_tick

logger = logging.getLogger(__name__)


class CriticalExposureError(Exception):
    """开仓已成交但保护单未能挂上"""


class ExecutionEngine:
    """开仓执行状态机"""

    def __init__(
        self,
        feed: MarketDataFeed,
        executor: OrderExecutor,
        account: AccountState,
        notifier: Notifier,
        config: TradingConfig,
    ):
        self.feed = feed
        self.executor = executor
        self.account = account
        self.notifier = notifier
        self.cfg = config

        self.locks: Dict[str, asyncio.Lock] = {}
        self.states: Dict[str, ExecutionState] = {}

        # 统计
        self.entry_count: int = 0
        self.rejected_count: int = 0
        self.aborted_count: int = 0
        self.critical_count: int = 0

        self.accepting = True

    # ----------------------------------------------------------------------
    # 对外接口
    # ----------------------------------------------------------------------
    def lock_for(self, symbol: str) -> asyncio.Lock:
        lock = self.locks.get(symbol)
        if lock is None:
            lock = asyncio.Lock()
            self.locks[symbol] = lock
        return lock

    def state_of(self, symbol: str) -> ExecutionState:
        return self.states.get(symbol, ExecutionState.IDLE)

    def is_busy(self, symbol: str) -> bool:
        return self.lock_for(symbol).locked()

    async def execute(self, signal: TradingSignal) -> CycleResult:
        symbol = signal.symbol
        if not signal.is_actionable:
            return CycleResult(symbol, CycleOutcome.NO_SIGNAL, self.state_of(symbol), "无信号")

        if not self.accepting:
            return self._reject(symbol, "系统正在关闭")

        lock = self.lock_for(symbol)
        # 检查和加锁之间没有await，不会被其他协程插入
        if lock.locked():
            return self._reject(symbol, f"上一轮执行尚未结束 (状态: {self.state_of(symbol).name})")
        if self.account.get_position(symbol) is not None:
            return self._reject(symbol, "已有持仓，等待止盈/止损")

        async with lock:
            try:
                return await self._run_cycle(signal)
            finally:
                self._set_state(symbol, ExecutionState.IDLE)

    async def wait_idle(self) -> None:
        """等待所有进行中的执行周期结束（退出前调用）"""
        for lock in list(self.locks.values()):
            async with lock:
                pass

    async def stop(self) -> None:
        """不再接受新信号，并等待进行中的周期结束"""
        self.accepting = False
        await self.wait_idle()

    def bracket_prices(self, side: PositionSide, entry_price: float, tick_size: float) -> Tuple[float, float]:
        """返回 (止损价, 止盈价)"""
        if side == PositionSide.LONG:
            stop = entry_price - self.cfg.STOP_LOSS_POINTS
            target = entry_price + self.cfg.TAKE_PROFIT_POINTS
        else:
            stop = entry_price + self.cfg.STOP_LOSS_POINTS
            target = entry_price - self.cfg.TAKE_PROFIT_POINTS
        return round_to_tick(stop, tick_size), round_to_tick(target, tick_size)

    def get_status(self) -> Dict[str, Any]:
        return {
            "states": {s: st.name for s, st in self.states.items()},
            "entries": self.entry_count,
            "rejected": self.rejected_count,
            "aborted": self.aborted_count,
            "critical": self.critical_count,
        }

    # ----------------------------------------------------------------------
    # 状态机
    # ----------------------------------------------------------------------
    async def _run_cycle(self, signal: TradingSignal) -> CycleResult:
        symbol = signal.symbol
        side = PositionSide.from_action(signal.action)
        logger.info(f"[{symbol}] 开始执行 {side.name} 信号，杠杆 {signal.leverage}x")

        # 1. 平掉旧仓位并撤单
        self._set_state(symbol, ExecutionState.FLATTENING)
        try:
            await self._flatten(symbol)
        except ExchangeError as e:
            return self._abort(symbol, "平仓/撤单", e)

        # 2. 刷新余额并计算数量
        self._set_state(symbol, ExecutionState.SIZING)
        try:
            balance = await self.executor.get_balance()
            self.account.balance = balance
            realized_mark = self.account.realized_total
            logger.info(f"当前余额: ${balance:.2f}")

            rules = await self.feed.get_symbol_rules(symbol)
            price = await self.feed.get_mark_price(symbol)
            await self.executor.set_leverage(symbol, signal.leverage)
            quantity = calculate_quantity(
                sizing_basis(balance, self.cfg.TRADE_AMOUNT),
                signal.leverage,
                price,
                rules.qty_step,
                safety_fraction=self.cfg.SAFETY_FRACTION,
                min_qty=rules.min_qty,
            )
        except (ExchangeError, SizingError) as e:
            return self._abort(symbol, "仓位计算", e)

        # 3. 市价开仓
        self._set_state(symbol, ExecutionState.ENTRY_SUBMITTED)
        try:
            fill = await self.executor.submit_market_order(symbol, side.entry_side, quantity)
        except ExchangeError as e:
            return self._abort(symbol, "市价开仓", e)

        self.entry_count += 1
        entry_price = fill.avg_price if fill.avg_price > 0 else price
        size = fill.executed_qty if fill.executed_qty > 0 else quantity
        stop_price, target_price = self.bracket_prices(side, entry_price, rules.tick_size)
        position = Position(
            symbol=symbol,
            side=side,
            size=size,
            entry_price=entry_price,
            leverage=signal.leverage,
            take_profit_price=target_price,
            stop_loss_price=stop_price,
            mark_price=price,
            entry_balance=balance,
            realized_at_entry=realized_mark,
        )
        logger.info(f"[{symbol}] 开仓成交: {side.name} {size} @ {entry_price:.2f}")

        # 4. 挂止盈止损
        self._set_state(symbol, ExecutionState.BRACKET_PLACING)
        try:
            await self._place_bracket(position)
        except CriticalExposureError as e:
            return await self._handle_critical_exposure(position, e)

        # 5. 持仓交给监控
        self._set_state(symbol, ExecutionState.OPEN)
        self.account.open_position(position)
        logger.info(f"[{symbol}] 止盈: ${target_price:.2f} | 止损: ${stop_price:.2f}")
        self.notifier.notify(NotifyCategory.ENTRY, {
            "合约": symbol,
            "方向": side.name,
            "数量": size,
            "开仓价": entry_price,
            "杠杆": f"{signal.leverage}x",
            "止盈": target_price,
            "止损": stop_price,
            "置信度": f"{signal.confidence:.1f}%",
        })
        return CycleResult(symbol, CycleOutcome.OPENED, ExecutionState.OPEN, "开仓完成", position)

    async def _flatten(self, symbol: str) -> None:
        fill = await self.executor.close_position(symbol)
        if fill is not None:
            logger.info(f"[{symbol}] 已平掉旧仓位: {fill.side.name} {fill.executed_qty}")
        await self.executor.cancel_all_orders(symbol)
        if self.cfg.SETTLE_DELAY_SECONDS > 0:
            await asyncio.sleep(self.cfg.SETTLE_DELAY_SECONDS)

    async def _place_bracket(self, position: Position) -> None:
        """先挂止损再挂止盈；已成功的单不重复提交"""
        if position.stop_loss_price <= 0 or position.take_profit_price <= 0:
            raise CriticalExposureError(
                f"止盈止损价无效: SL={position.stop_loss_price} TP={position.take_profit_price}"
            )

        legs = (
            ("止损", self.executor.submit_stop_order, position.stop_loss_price),
            ("止盈", self.executor.submit_take_profit_order, position.take_profit_price),
        )
        exit_side = position.side.exit_side
        attempts = self.cfg.BRACKET_RETRY_ATTEMPTS

        for name, submit, trigger in legs:
            last_error: Optional[ExchangeError] = None
            for attempt in range(1, attempts + 1):
                try:
                    await submit(position.symbol, exit_side, position.size, trigger, reduce_only=True)
                    last_error = None
                    break
                except ExchangeError as e:
                    last_error = e
                    logger.warning(f"[{position.symbol}] {name}单提交失败 ({attempt}/{attempts}): {e}")
                    if not isinstance(e, ExchangeTransientError):
                        break
                    if attempt < attempts:
                        await asyncio.sleep(self.cfg.BRACKET_RETRY_DELAY)
            if last_error is not None:
                raise CriticalExposureError(f"{name}单提交失败: {last_error}") from last_error

    async def _handle_critical_exposure(self, position: Position, error: Exception) -> CycleResult:
        symbol = position.symbol
        self.critical_count += 1
        self._set_state(symbol, ExecutionState.ABORTED)
        logger.critical(
            f"[{symbol}] 持仓无保护! {position.side.name} {position.size} @ {position.entry_price:.2f}: {error}"
        )
        self.notifier.notify(NotifyCategory.CRITICAL, {
            "合约": symbol,
            "方向": position.side.name,
            "数量": position.size,
            "开仓价": position.entry_price,
            "错误": str(error),
            "处理": "执行紧急平仓" if self.cfg.EMERGENCY_FLATTEN else "未启用紧急平仓，请立即人工处理",
        })

        reason = f"保护单失败: {error}"
        if self.cfg.EMERGENCY_FLATTEN:
            try:
                remaining = await self._emergency_close(position)
            except ExchangeError as close_error:
                logger.critical(f"[{symbol}] 紧急平仓失败: {close_error}")
                reason = f"{reason}; 紧急平仓失败: {close_error}"
            else:
                if remaining <= 0:
                    logger.critical(f"[{symbol}] 紧急平仓完成")
                    self.notifier.notify(NotifyCategory.CRITICAL, {
                        "合约": symbol,
                        "结果": "紧急平仓完成，当前无持仓",
                    })
                    return CycleResult(symbol, CycleOutcome.CRITICAL, ExecutionState.ABORTED, f"{reason}; 已紧急平仓")
                logger.critical(f"[{symbol}] 紧急平仓只成交 {position.size - remaining}，剩余 {remaining}")
                reason = f"{reason}; 紧急平仓未完全成交，剩余 {remaining}"
                position.size = remaining

        # 仍有敞口：登记为无保护持仓，由监控继续跟踪直到交易所持仓为0
        position.protected = False
        self.account.open_position(position)
        self.notifier.notify(NotifyCategory.CRITICAL, {
            "合约": symbol,
            "结果": "持仓仍然存在且没有止损保护，请立即人工处理",
        })
        return CycleResult(symbol, CycleOutcome.CRITICAL, ExecutionState.ABORTED, reason, position)

    async def _emergency_close(self, position: Position) -> float:
        """按开仓成交数量直接市价只减仓（不先查交易所持仓），返回未平数量"""
        symbol = position.symbol
        fill = await self.executor.submit_market_order(
            symbol, position.side.exit_side, position.size, reduce_only=True
        )
        try:
            await self.executor.cancel_all_orders(symbol)
        except ExchangeError as e:
            # 剩下的都是只减仓单
            logger.error(f"[{symbol}] 紧急平仓后撤单失败: {e}")
        return max(position.size - fill.executed_qty, 0.0)

    def _abort(self, symbol: str, stage: str, error: Exception) -> CycleResult:
        self.aborted_count += 1
        self._set_state(symbol, ExecutionState.ABORTED)
        transient = isinstance(error, ExchangeTransientError)
        kind = "临时错误" if transient else "被拒绝"
        logger.error(f"[{symbol}] {stage}失败（{kind}），本轮中止: {error}")
        self.notifier.notify(NotifyCategory.ERROR, {
            "合约": symbol,
            "阶段": stage,
            "类型": kind,
            "错误": str(error),
        })
        return CycleResult(symbol, CycleOutcome.ABORTED, ExecutionState.ABORTED, f"{stage}失败: {error}")

    def _reject(self, symbol: str, reason: str) -> CycleResult:
        self.rejected_count += 1
        logger.warning(f"[{symbol}] 拒绝新信号: {reason}")
        return CycleResult(symbol, CycleOutcome.REJECTED, self.state_of(symbol), reason)

    def _set_state(self, symbol: str, state: ExecutionState) -> None:
        previous = self.states.get(symbol, ExecutionState.IDLE)
        self.states[symbol] = state
        if previous != state:
            logger.debug(f"[{symbol}] 状态: {previous.name} → {state.name}")
