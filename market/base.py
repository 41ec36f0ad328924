from abc import ABC, abstractmethod
from typing import List

from models.market_data import SymbolRules


class MarketDataFeed(ABC):
    """行情数据抽象接口"""

    @abstractmethod
    async def ping(self) -> bool:
        """连通性检查"""
        pass

    @abstractmethod
    async def get_recent_closes(self, symbol: str, interval: str, count: int) -> List[float]:
        """最近count根K线收盘价（旧→新）"""
        pass

    @abstractmethod
    async def get_mark_price(self, symbol: str) -> float:
        """当前标记价格"""
        pass

    @abstractmethod
    async def get_symbol_rules(self, symbol: str) -> SymbolRules:
        """数量步长/最小数量/价格精度"""
        pass

    async def close(self):
        pass
