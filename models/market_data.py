from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class TechnicalSnapshot:
    """单个评估周期的技术指标快照"""
    fast_trend: float
    mid_trend: float
    slow_trend: float
    momentum: float
    price: float
    sufficient: bool = True
    sample_count: int = 0

    @property
    def price_distance(self) -> float:
        """价格相对快线的偏离比例，快线无效时返回inf"""
        if self.fast_trend <= 0:
            return float("inf")
        return abs(self.price - self.fast_trend) / self.fast_trend


@dataclass(slots=True, frozen=True)
class SymbolRules:
    """交易所合约规则（数量步长/最小数量/价格精度）"""
    symbol: str
    qty_step: float
    min_qty: float
    tick_size: float
