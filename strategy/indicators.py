# -*- coding: utf-8 -*-
"""
indicators.py - 技术指标计算

输入按时间排序（旧→新）的收盘价序列，输出固定结构的 TechnicalSnapshot。
纯函数，无副作用。
"""

from __future__ import annotations

import math
import logging
from typing import List, Sequence

from config.strategy_config import SignalConfig
from models.market_data import TechnicalSnapshot

logger = logging.getLogger(__name__)

NEUTRAL_MOMENTUM = 50.0


def calc_ema(prices: Sequence[float], period: int) -> float:
    """EMA: 用前period个样本的均值作为种子，返回最新一根的值"""
    if period <= 0:
        raise ValueError("period必须为正数")
    if len(prices) < period:
        return 0.0

    alpha = 2.0 / (period + 1)
    ema = sum(prices[:period]) / period
    for p in prices[period:]:
        ema = alpha * p + (1 - alpha) * ema
    return ema


def calc_rsi(prices: Sequence[float], period: int = 14) -> float:
    """Wilder平滑RSI，数据不足时返回50"""
    if len(prices) <= period:
        return NEUTRAL_MOMENTUM

    gains: List[float] = []
    losses: List[float] = []
    for i in range(1, len(prices)):
        delta = prices[i] - prices[i - 1]
        gains.append(max(delta, 0.0))
        losses.append(max(-delta, 0.0))

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period

    if avg_loss == 0:
        # 完全横盘无涨跌时视为中性
        return 100.0 if avg_gain > 0 else NEUTRAL_MOMENTUM
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def insufficient_snapshot(closes: Sequence[float]) -> TechnicalSnapshot:
    last = closes[-1] if closes else 0.0
    if not math.isfinite(last):
        last = 0.0
    return TechnicalSnapshot(
        fast_trend=0.0,
        mid_trend=0.0,
        slow_trend=0.0,
        momentum=NEUTRAL_MOMENTUM,
        price=last,
        sufficient=False,
        sample_count=len(closes),
    )


def compute_snapshot(closes: Sequence[float], config: SignalConfig) -> TechnicalSnapshot:
    closes = [float(c) for c in closes]

    if len(closes) < config.min_samples:
        logger.warning(f"K线数据不足: {len(closes)} < {config.min_samples}")
        return insufficient_snapshot(closes)

    if not all(math.isfinite(c) for c in closes):
        logger.warning("收盘价序列包含非法数值，视为数据不足")
        return insufficient_snapshot(closes)

    snapshot = TechnicalSnapshot(
        fast_trend=calc_ema(closes, config.fast_period),
        mid_trend=calc_ema(closes, config.mid_period),
        slow_trend=calc_ema(closes, config.slow_period),
        momentum=calc_rsi(closes, config.rsi_period),
        price=closes[-1],
        sufficient=True,
        sample_count=len(closes),
    )
    logger.info(
        f"指标: price={snapshot.price:.2f} ema{config.fast_period}={snapshot.fast_trend:.2f} "
        f"ema{config.mid_period}={snapshot.mid_trend:.2f} ema{config.slow_period}={snapshot.slow_trend:.2f} "
        f"rsi={snapshot.momentum:.2f}"
    )
    return snapshot
