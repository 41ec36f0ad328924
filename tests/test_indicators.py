#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
测试EMA/RSI计算和指标快照
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import math

import pytest

from config.strategy_config import SignalConfig
from strategy.indicators import NEUTRAL_MOMENTUM, calc_ema, calc_rsi, compute_snapshot


def test_ema_seeded_with_sma():
    """前period个样本取均值作种子"""
    # 种子 (1+2+3)/3 = 2, alpha = 0.5: 4 → 3, 5 → 4
    assert calc_ema([1, 2, 3, 4, 5], 3) == pytest.approx(4.0)
    print("✓ EMA种子计算正确")


def test_ema_constant_series():
    assert calc_ema([100.0] * 50, 7) == pytest.approx(100.0)


def test_ema_insufficient_returns_zero():
    assert calc_ema([1.0, 2.0], 7) == 0.0


def test_ema_invalid_period():
    with pytest.raises(ValueError):
        calc_ema([1.0, 2.0], 0)


def test_rsi_monotonic_series():
    rising = [float(i) for i in range(1, 40)]
    falling = list(reversed(rising))
    assert calc_rsi(rising, 14) == pytest.approx(100.0)
    assert calc_rsi(falling, 14) == pytest.approx(0.0)
    print("✓ 单边行情RSI为100/0")


def test_rsi_flat_series_is_neutral():
    assert calc_rsi([42000.0] * 30, 14) == NEUTRAL_MOMENTUM


def test_rsi_insufficient_is_neutral():
    assert calc_rsi([1.0, 2.0, 3.0], 14) == NEUTRAL_MOMENTUM


def test_rsi_stays_in_range():
    prices = [100 + 5 * math.sin(i / 3.0) + (i % 4) for i in range(120)]
    rsi = calc_rsi(prices, 14)
    assert 0.0 <= rsi <= 100.0


def test_snapshot_insufficient_below_lookback():
    config = SignalConfig()
    closes = [100.0 + i for i in range(199)]
    snapshot = compute_snapshot(closes, config)

    assert not snapshot.sufficient
    assert snapshot.fast_trend == 0.0
    assert snapshot.momentum == NEUTRAL_MOMENTUM
    assert snapshot.sample_count == 199
    print("✓ 199根K线视为数据不足")


def test_snapshot_rejects_non_finite():
    closes = [100.0 + i for i in range(200)]
    closes[50] = float("nan")
    snapshot = compute_snapshot(closes, SignalConfig())
    assert not snapshot.sufficient


def test_snapshot_uptrend_alignment():
    """线性上涨: 价格 > EMA7 > EMA100 > EMA200"""
    closes = [float(i) for i in range(200)]
    snapshot = compute_snapshot(closes, SignalConfig())

    assert snapshot.sufficient
    assert snapshot.price == 199.0
    assert snapshot.price > snapshot.fast_trend > snapshot.mid_trend > snapshot.slow_trend
    assert snapshot.fast_trend == pytest.approx(196.0)
    assert snapshot.mid_trend == pytest.approx(149.5)
    assert snapshot.slow_trend == pytest.approx(99.5)
    assert snapshot.momentum == pytest.approx(100.0)
    print("✓ 上涨趋势均线排列正确")
