import math
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP


def _step_decimal(step: float) -> Decimal:
    d = Decimal(str(step))
    if d <= 0:
        raise ValueError(f"步长必须为正: {step}")
    return d


def floor_to_step(value: float, step: float) -> float:
    """向下取整到步长整数倍（数量只能往小取，避免超额占用保证金）"""
    d_step = _step_decimal(step)
    units = (Decimal(str(value)) / d_step).to_integral_value(rounding=ROUND_DOWN)
    return float(units * d_step)


def round_to_tick(price: float, tick: float) -> float:
    d_tick = _step_decimal(tick)
    units = (Decimal(str(price)) / d_tick).to_integral_value(rounding=ROUND_HALF_UP)
    return float(units * d_tick)


def is_finite_positive(*values: float) -> bool:
    return all(isinstance(v, (int, float)) and math.isfinite(v) and v > 0 for v in values)
