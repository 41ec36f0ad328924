# -*- coding: utf-8 -*-
from dataclasses import dataclass
from typing import Optional, Tuple

from config.env_utils import env_float, env_int, env_str, load_env


@dataclass
class SignalConfig:
    """EMA趋势 + RSI动量 信号配置"""
    # EMA参数
    fast_period: int = 7
    mid_period: int = 100
    slow_period: int = 200

    # RSI参数
    rsi_period: int = 14

    # K线参数
    candle_interval: str = "30m"
    lookback: int = 200                  # 少于该数量的K线视为数据不足

    # 入场精度: 价格与EMA快线的最大偏离
    entry_precision: float = 0.003

    # RSI区间（闭区间）
    long_rsi_band: Tuple[float, float] = (30.0, 50.0)
    short_rsi_band: Tuple[float, float] = (50.0, 70.0)

    # 极端RSI使用高杠杆
    long_extreme_rsi: float = 35.0
    short_extreme_rsi: float = 65.0

    # 杠杆档位
    base_leverage: int = 5
    high_leverage: int = 10

    def __post_init__(self):
        if not 0 < self.fast_period < self.mid_period < self.slow_period:
            raise ValueError("EMA周期必须满足 fast < mid < slow")
        if self.rsi_period < 2:
            raise ValueError("rsi_period至少为2")
        if self.base_leverage < 1 or self.high_leverage < self.base_leverage:
            raise ValueError("杠杆档位无效")
        if self.entry_precision <= 0:
            raise ValueError("entry_precision必须为正数")
        self.long_rsi_band = tuple(self.long_rsi_band)
        self.short_rsi_band = tuple(self.short_rsi_band)

    @property
    def min_samples(self) -> int:
        return max(self.lookback, self.slow_period)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "SignalConfig":
        load_env(env_file)
        defaults = cls()
        return cls(
            candle_interval=env_str("CANDLE_INTERVAL", defaults.candle_interval),
            lookback=env_int("CANDLE_LOOKBACK", defaults.lookback),
            entry_precision=env_float("ENTRY_PRECISION", defaults.entry_precision),
            base_leverage=env_int("BASE_LEVERAGE", defaults.base_leverage),
            high_leverage=env_int("HIGH_LEVERAGE", defaults.high_leverage),
        )
