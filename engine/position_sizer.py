# -*- coding: utf-8 -*-
"""
position_sizer.py - 仓位计算

数量 = 余额 × 安全系数 × 杠杆 / 价格，向下取整到交易所数量步长。
"""

import logging

from utils.math_utils import floor_to_step, is_finite_positive

logger = logging.getLogger(__name__)

DEFAULT_SAFETY_FRACTION = 0.95


class SizingError(ValueError):
    """计算出的数量无效，调用方必须中止开仓"""


def sizing_basis(balance: float, trade_amount: float) -> float:
    """开仓资金基数: 配置了单笔资金上限时取两者较小值"""
    if trade_amount > 0:
        return min(balance, trade_amount)
    return balance


def calculate_quantity(
    balance: float,
    leverage: int,
    price: float,
    qty_step: float,
    safety_fraction: float = DEFAULT_SAFETY_FRACTION,
    min_qty: float = 0.0,
) -> float:
    if not is_finite_positive(balance):
        raise SizingError(f"余额无效: {balance}")
    if not is_finite_positive(leverage, price, qty_step, safety_fraction):
        raise SizingError(
            f"参数无效: leverage={leverage} price={price} step={qty_step} safety={safety_fraction}"
        )

    notional = balance * safety_fraction * leverage
    raw_qty = notional / price
    quantity = floor_to_step(raw_qty, qty_step)

    if quantity <= 0:
        raise SizingError(f"数量取整后为0: 名义价值 {notional:.2f} / 价格 {price} < 步长 {qty_step}")
    if quantity < min_qty:
        raise SizingError(f"数量 {quantity} 低于最小下单量 {min_qty}")

    logger.info(f"仓位: {quantity} (名义价值 ${notional:.2f}, 原始数量 {raw_qty:.6f})")
    return quantity
