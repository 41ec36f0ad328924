from dataclasses import dataclass, field
from datetime import time
from typing import List, Optional

from config.env_utils import (
    env_bool,
    env_float,
    env_int,
    env_list,
    env_str,
    load_env,
)


def parse_clock(value: str) -> time:
    """'HH:MM' -> datetime.time"""
    hour, _, minute = value.partition(":")
    return time(int(hour), int(minute or 0))


@dataclass
class TradingConfig:
    SYMBOLS: List[str] = field(default_factory=lambda: ["BTCUSDT"])
    TRADE_AMOUNT: float = 100.0          # 单次开仓资金上限(USDT)，<=0表示使用全部余额
    SAFETY_FRACTION: float = 0.95        # 预留5%保证金缓冲
    STOP_LOSS_POINTS: float = 500.0      # 止损距离(价格点)
    TAKE_PROFIT_POINTS: float = 500.0    # 止盈距离(价格点)
    MARGIN_TYPE: str = "ISOLATED"
    ENTRY_TIME: str = "16:33"
    REPORT_TIME: str = "23:55"
    MONITOR_INTERVAL_SECONDS: float = 60.0
    SETTLE_DELAY_SECONDS: float = 2.0
    BRACKET_RETRY_ATTEMPTS: int = 3
    BRACKET_RETRY_DELAY: float = 0.8
    EMERGENCY_FLATTEN: bool = True
    SIGNIFICANT_PNL_USD: float = 10.0

    def __post_init__(self):
        self.SYMBOLS = [s.upper() for s in self.SYMBOLS]
        if not self.SYMBOLS:
            raise ValueError("SYMBOLS不能为空")
        if not 0 < self.SAFETY_FRACTION <= 1:
            raise ValueError("SAFETY_FRACTION必须在(0, 1]之间")
        if self.STOP_LOSS_POINTS <= 0 or self.TAKE_PROFIT_POINTS <= 0:
            raise ValueError("止盈止损距离必须为正数")
        if self.MARGIN_TYPE not in ("ISOLATED", "CROSSED"):
            raise ValueError(f"未知保证金模式: {self.MARGIN_TYPE}")
        if self.BRACKET_RETRY_ATTEMPTS < 1:
            raise ValueError("BRACKET_RETRY_ATTEMPTS至少为1")
        if self.MONITOR_INTERVAL_SECONDS <= 0:
            raise ValueError("MONITOR_INTERVAL_SECONDS必须为正数")
        # 提前校验时间格式
        parse_clock(self.ENTRY_TIME)
        parse_clock(self.REPORT_TIME)

    @property
    def entry_time(self) -> time:
        return parse_clock(self.ENTRY_TIME)

    @property
    def report_time(self) -> time:
        return parse_clock(self.REPORT_TIME)

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "TradingConfig":
        load_env(env_file)
        defaults = cls()
        return cls(
            SYMBOLS=env_list("SYMBOLS", [env_str("SYMBOL", defaults.SYMBOLS[0])]),
            TRADE_AMOUNT=env_float("TRADE_AMOUNT_USDT", defaults.TRADE_AMOUNT),
            SAFETY_FRACTION=env_float("SAFETY_FRACTION", defaults.SAFETY_FRACTION),
            STOP_LOSS_POINTS=env_float("STOP_LOSS_POINTS", defaults.STOP_LOSS_POINTS),
            TAKE_PROFIT_POINTS=env_float("TAKE_PROFIT_POINTS", defaults.TAKE_PROFIT_POINTS),
            MARGIN_TYPE=env_str("MARGIN_TYPE", defaults.MARGIN_TYPE).upper(),
            ENTRY_TIME=env_str("ENTRY_TIME", defaults.ENTRY_TIME),
            REPORT_TIME=env_str("REPORT_TIME", defaults.REPORT_TIME),
            MONITOR_INTERVAL_SECONDS=env_float("MONITOR_INTERVAL_SECONDS", defaults.MONITOR_INTERVAL_SECONDS),
            SETTLE_DELAY_SECONDS=env_float("SETTLE_DELAY_SECONDS", defaults.SETTLE_DELAY_SECONDS),
            BRACKET_RETRY_ATTEMPTS=env_int("BRACKET_RETRY_ATTEMPTS", defaults.BRACKET_RETRY_ATTEMPTS),
            BRACKET_RETRY_DELAY=env_float("BRACKET_RETRY_DELAY", defaults.BRACKET_RETRY_DELAY),
            EMERGENCY_FLATTEN=env_bool("EMERGENCY_FLATTEN", defaults.EMERGENCY_FLATTEN),
            SIGNIFICANT_PNL_USD=env_float("SIGNIFICANT_PNL_USD", defaults.SIGNIFICANT_PNL_USD),
        )
