from abc import ABC, abstractmethod
from typing import List, Optional

from models.enums import OrderSide
from models.trading_models import ExchangePosition, OpenOrder, OrderFill


class OrderExecutor(ABC):
    @abstractmethod
    async def set_leverage(self, symbol: str, leverage: int) -> None:
        pass

    @abstractmethod
    async def set_margin_type(self, symbol: str, margin_type: str) -> None:
        pass

    @abstractmethod
    async def submit_market_order(
        self, symbol: str, side: OrderSide, quantity: float, reduce_only: bool = False
    ) -> OrderFill:
        pass

    @abstractmethod
    async def submit_stop_order(
        self, symbol: str, side: OrderSide, quantity: float, trigger_price: float, reduce_only: bool = True
    ) -> str:
        pass

    @abstractmethod
    async def submit_take_profit_order(
        self, symbol: str, side: OrderSide, quantity: float, trigger_price: float, reduce_only: bool = True
    ) -> str:
        pass

    @abstractmethod
    async def cancel_all_orders(self, symbol: str) -> None:
        pass

    @abstractmethod
    async def get_open_orders(self, symbol: str) -> List[OpenOrder]:
        pass

    @abstractmethod
    async def get_open_positions(self) -> List[ExchangePosition]:
        pass

    @abstractmethod
    async def get_balance(self) -> float:
        pass

    async def get_position(self, symbol: str) -> Optional[ExchangePosition]:
        """单个标的的非零持仓，没有则返回None"""
        for pos in await self.get_open_positions():
            if pos.symbol == symbol and pos.quantity != 0:
                return pos
        return None

    async def close_position(self, symbol: str) -> Optional[OrderFill]:
        """市价只减仓平掉该标的的持仓"""
        pos = await self.get_position(symbol)
        if pos is None:
            return None
        return await self.submit_market_order(
            symbol, pos.side.exit_side, abs(pos.quantity), reduce_only=True
        )

    async def close(self):
        pass
