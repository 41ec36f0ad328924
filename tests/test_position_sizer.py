#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
测试仓位计算
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from decimal import Decimal

import pytest

from engine.position_sizer import SizingError, calculate_quantity, sizing_basis
from utils.math_utils import floor_to_step, round_to_tick


def test_quantity_rounded_down_to_step():
    """1000 × 0.95 × 5 / 42000 = 0.11309... → 0.113"""
    qty = calculate_quantity(1000.0, 5, 42000.0, 0.001)

    assert qty == pytest.approx(0.113)
    assert qty <= 1000.0 * 0.95 * 5 / 42000.0
    print(f"✓ 数量: {qty}")


def test_quantity_is_multiple_of_step():
    for balance, leverage, price, step in [
        (1234.56, 10, 3150.37, 0.001),
        (87.3, 5, 0.5321, 1.0),
        (5000.0, 7, 42000.0, 0.01),
    ]:
        qty = calculate_quantity(balance, leverage, price, step)
        units = Decimal(str(qty)) / Decimal(str(step))
        assert units == units.to_integral_value(), f"{qty} 不是 {step} 的整数倍"
        assert qty <= balance * 0.95 * leverage / price


def test_zero_balance_rejected():
    with pytest.raises(SizingError):
        calculate_quantity(0.0, 5, 42000.0, 0.001)


def test_invalid_inputs_rejected():
    with pytest.raises(SizingError):
        calculate_quantity(1000.0, 5, 0.0, 0.001)
    with pytest.raises(SizingError):
        calculate_quantity(1000.0, 5, float("nan"), 0.001)
    with pytest.raises(SizingError):
        calculate_quantity(float("inf"), 5, 42000.0, 0.001)


def test_floor_to_zero_rejected():
    """余额太小，数量取整后为0"""
    with pytest.raises(SizingError):
        calculate_quantity(1.0, 1, 42000.0, 0.001)


def test_below_min_qty_rejected():
    with pytest.raises(SizingError):
        calculate_quantity(100.0, 5, 42000.0, 0.001, min_qty=0.05)


def test_sizing_basis_caps_trade_amount():
    assert sizing_basis(1000.0, 100.0) == 100.0
    assert sizing_basis(50.0, 100.0) == 50.0
    assert sizing_basis(1000.0, 0.0) == 1000.0


def test_step_helpers():
    assert floor_to_step(0.1139, 0.001) == pytest.approx(0.113)
    assert floor_to_step(0.3, 0.1) == pytest.approx(0.3)
    assert round_to_tick(41500.04, 0.1) == pytest.approx(41500.0)
    assert round_to_tick(41500.05, 0.1) == pytest.approx(41500.1)
    with pytest.raises(ValueError):
        floor_to_step(1.0, 0.0)
