# -*- coding: utf-8 -*-
"""
trend_momentum_strategy.py

EMA趋势排列 + RSI动量 开仓信号

核心逻辑：
1. 趋势排列：多头 价格 > EMA7 > EMA100 > EMA200，空头完全反向
   - 先判断多头，不成立再判断空头
2. 入场精度：价格距EMA7不超过0.3%
3. 动量区间：多头RSI 30-50（超卖回升），空头RSI 50-70（超买回落）
4. 杠杆：RSI进入极端区（多<35 / 空>65）用高杠杆，否则基础杠杆
5. 置信度只做展示，不参与开仓判断
"""

from __future__ import annotations

import math
import logging
from typing import Dict, Optional, Tuple

from config.strategy_config import SignalConfig
from models.enums import SignalAction
from models.market_data import TechnicalSnapshot
from models.trading_models import TradingSignal
from strategy.base import SignalStrategy

logger = logging.getLogger(__name__)

MAX_SPREAD_POINTS = 30.0


class TrendMomentumStrategy(SignalStrategy):
    """EMA 7/100/200 + RSI(14) 日内定时开仓策略"""

    def __init__(self, config: Optional[SignalConfig] = None):
        self.cfg = config or SignalConfig()

        # 统计
        self.total_evaluations: int = 0
        self.total_signals: int = 0

    # ----------------------------------------------------------------------
    # 对外接口
    # ----------------------------------------------------------------------
    def generate_signal(self, symbol: str, snapshot: TechnicalSnapshot) -> TradingSignal:
        self.total_evaluations += 1

        action = self._decide(snapshot)
        if action == SignalAction.NONE:
            logger.info(f"[{symbol}] 无有效信号，等待下次机会")
            return self._no_signal(symbol, snapshot)

        is_long = action == SignalAction.LONG
        leverage = self.determine_leverage(snapshot.momentum, is_long)
        confidence = self.calculate_confidence(snapshot, action)
        self.total_signals += 1

        logger.info(
            f"[{symbol}] 信号: {action.name} | 杠杆: {leverage}x | 置信度: {confidence:.1f}%"
        )
        return TradingSignal(
            symbol=symbol,
            action=action,
            leverage=leverage,
            confidence=confidence,
            snapshot=snapshot,
        )

    def determine_leverage(self, rsi: float, is_long: bool) -> int:
        if is_long and rsi < self.cfg.long_extreme_rsi:
            logger.info(f"RSI极度超卖 {rsi:.2f}，使用高杠杆 {self.cfg.high_leverage}x")
            return self.cfg.high_leverage
        if not is_long and rsi > self.cfg.short_extreme_rsi:
            logger.info(f"RSI极度超买 {rsi:.2f}，使用高杠杆 {self.cfg.high_leverage}x")
            return self.cfg.high_leverage
        return self.cfg.base_leverage

    def calculate_confidence(self, snapshot: TechnicalSnapshot, action: SignalAction) -> float:
        """置信度 = 均线发散度(<=30) + RSI偏离中值*2 + 贴近快线奖励，截断到[0, 100]"""
        fast, slow, rsi = snapshot.fast_trend, snapshot.slow_trend, snapshot.momentum
        if slow <= 0 or fast <= 0:
            return 0.0

        if action == SignalAction.LONG:
            spread_pct = (fast - slow) / slow * 100
            rsi_points = (50.0 - rsi) * 2
        elif action == SignalAction.SHORT:
            spread_pct = (slow - fast) / slow * 100
            rsi_points = (rsi - 50.0) * 2
        else:
            return 0.0

        confidence = min(spread_pct * 10, MAX_SPREAD_POINTS)
        confidence += rsi_points

        distance_pct = snapshot.price_distance * 100
        max_pct = self.cfg.entry_precision * 100
        confidence += max(0.0, (max_pct - distance_pct) * 100)

        return min(max(confidence, 0.0), 100.0)

    def get_performance_metrics(self) -> Dict[str, float]:
        return {
            "total_evaluations": float(self.total_evaluations),
            "total_signals": float(self.total_signals),
        }

    # ----------------------------------------------------------------------
    # 判断逻辑
    # ----------------------------------------------------------------------
    def _decide(self, snapshot: TechnicalSnapshot) -> SignalAction:
        if not snapshot.sufficient:
            logger.debug("数据不足，不产生信号")
            return SignalAction.NONE
        if not self._is_sane(snapshot):
            logger.warning(f"指标数值异常，不产生信号: {snapshot}")
            return SignalAction.NONE

        if self._long_aligned(snapshot):
            action, band = SignalAction.LONG, self.cfg.long_rsi_band
        elif self._short_aligned(snapshot):
            action, band = SignalAction.SHORT, self.cfg.short_rsi_band
        else:
            logger.debug("均线排列不满足（多空均失败）")
            return SignalAction.NONE

        distance = snapshot.price_distance
        if distance > self.cfg.entry_precision:
            logger.debug(f"{action.name} 失败: 价格距EMA快线过远 ({distance * 100:.2f}%)")
            return SignalAction.NONE

        if not self._in_band(snapshot.momentum, band):
            logger.debug(
                f"{action.name} 失败: RSI不在区间 {band[0]:.0f}-{band[1]:.0f} ({snapshot.momentum:.2f})"
            )
            return SignalAction.NONE

        return action

    @staticmethod
    def _is_sane(snapshot: TechnicalSnapshot) -> bool:
        values = (
            snapshot.price,
            snapshot.fast_trend,
            snapshot.mid_trend,
            snapshot.slow_trend,
            snapshot.momentum,
        )
        if not all(math.isfinite(v) for v in values):
            return False
        return min(values[:4]) > 0

    @staticmethod
    def _long_aligned(s: TechnicalSnapshot) -> bool:
        return s.price > s.fast_trend > s.mid_trend > s.slow_trend

    @staticmethod
    def _short_aligned(s: TechnicalSnapshot) -> bool:
        return s.price < s.fast_trend < s.mid_trend < s.slow_trend

    @staticmethod
    def _in_band(value: float, band: Tuple[float, float]) -> bool:
        low, high = band
        return low <= value <= high

    def _no_signal(self, symbol: str, snapshot: TechnicalSnapshot) -> TradingSignal:
        return TradingSignal(
            symbol=symbol,
            action=SignalAction.NONE,
            leverage=self.cfg.base_leverage,
            confidence=0.0,
            snapshot=snapshot,
        )
