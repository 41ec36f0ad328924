# -*- coding: utf-8 -*-
"""
strategy/base.py

交易策略基类定义
"""

from abc import ABC, abstractmethod
from typing import Dict
from models.market_data import TechnicalSnapshot
from models.trading_models import TradingSignal


class SignalStrategy(ABC):
    """信号策略基类"""

    @abstractmethod
    def generate_signal(self, symbol: str, snapshot: TechnicalSnapshot) -> TradingSignal:
        """
        根据指标快照生成交易信号

        Args:
            symbol: 合约代码
            snapshot: 技术指标快照

        Returns:
            TradingSignal（无信号时 action=NONE，不返回None）
        """
        pass

    def get_performance_metrics(self) -> Dict[str, float]:
        """
        获取性能指标（可选实现）

        Returns:
            性能指标字典
        """
        return {}
