# -*- coding: utf-8 -*-
"""
binance_executor.py - Binance合约订单执行器
"""

import logging
from decimal import Decimal
from typing import List

from config.system_config import SystemConfig
from models.enums import OrderSide
from models.trading_models import ExchangePosition, OpenOrder, OrderFill
from .base import OrderExecutor
from .binance_rest import BinanceRestClient
from .errors import ExchangeRejectionError

logger = logging.getLogger(__name__)

QUOTE_ASSET = "USDT"
MARGIN_TYPE_UNCHANGED = -4046


def _fmt(value: float) -> str:
    """数值转字符串，去掉浮点尾差和科学计数法"""
    return format(Decimal(str(value)).normalize(), "f")


class BinanceOrderExecutor(OrderExecutor):
    """Binance USDⓈ-M 订单执行器"""

    def __init__(self, config: SystemConfig, rest: BinanceRestClient = None):
        self.config = config
        self.rest = rest or BinanceRestClient(config)

    async def set_leverage(self, symbol: str, leverage: int) -> None:
        result = await self.rest.signed(
            "POST", "/fapi/v1/leverage", {"symbol": symbol, "leverage": int(leverage)}
        )
        logger.info(f"[{symbol}] 杠杆已设置: {result.get('leverage', leverage)}x")

    async def set_margin_type(self, symbol: str, margin_type: str) -> None:
        try:
            await self.rest.signed(
                "POST", "/fapi/v1/marginType", {"symbol": symbol, "marginType": margin_type}
            )
            logger.info(f"[{symbol}] 保证金模式已设置: {margin_type}")
        except ExchangeRejectionError as e:
            if e.code != MARGIN_TYPE_UNCHANGED:
                raise
            logger.info(f"[{symbol}] 保证金模式已是 {margin_type}")

    async def submit_market_order(
        self, symbol: str, side: OrderSide, quantity: float, reduce_only: bool = False
    ) -> OrderFill:
        params = {
            "symbol": symbol,
            "side": side.name,
            "type": "MARKET",
            "quantity": _fmt(quantity),
            "newOrderRespType": "RESULT",
        }
        if reduce_only:
            params["reduceOnly"] = True

        result = await self.rest.signed("POST", "/fapi/v1/order", params)
        fill = OrderFill(
            order_id=str(result.get("orderId", "")),
            symbol=symbol,
            side=side,
            executed_qty=float(result.get("executedQty") or 0.0),
            avg_price=float(result.get("avgPrice") or 0.0),
            status=str(result.get("status", "")),
        )
        logger.info(
            f"[{symbol}] 市价单: {side.name} {_fmt(quantity)} -> {fill.status} "
            f"成交 {fill.executed_qty} @ {fill.avg_price}"
        )
        return fill

    async def submit_stop_order(
        self, symbol: str, side: OrderSide, quantity: float, trigger_price: float, reduce_only: bool = True
    ) -> str:
        return await self._submit_trigger_order(
            symbol, side, "STOP_MARKET", quantity, trigger_price, reduce_only
        )

    async def submit_take_profit_order(
        self, symbol: str, side: OrderSide, quantity: float, trigger_price: float, reduce_only: bool = True
    ) -> str:
        return await self._submit_trigger_order(
            symbol, side, "TAKE_PROFIT_MARKET", quantity, trigger_price, reduce_only
        )

    async def _submit_trigger_order(
        self,
        symbol: str,
        side: OrderSide,
        order_type: str,
        quantity: float,
        trigger_price: float,
        reduce_only: bool,
    ) -> str:
        result = await self.rest.signed(
            "POST",
            "/fapi/v1/order",
            {
                "symbol": symbol,
                "side": side.name,
                "type": order_type,
                "quantity": _fmt(quantity),
                "stopPrice": _fmt(trigger_price),
                "reduceOnly": reduce_only,
                "workingType": "MARK_PRICE",
            },
        )
        order_id = str(result.get("orderId", ""))
        logger.info(f"[{symbol}] {order_type}: {side.name} {_fmt(quantity)} 触发价 {_fmt(trigger_price)} (ID: {order_id})")
        return order_id

    async def cancel_all_orders(self, symbol: str) -> None:
        await self.rest.signed("DELETE", "/fapi/v1/allOpenOrders", {"symbol": symbol})
        logger.info(f"[{symbol}] 已撤销全部挂单")

    async def get_open_orders(self, symbol: str) -> List[OpenOrder]:
        orders = await self.rest.signed("GET", "/fapi/v1/openOrders", {"symbol": symbol})
        return [
            OpenOrder(
                order_id=str(o.get("orderId", "")),
                symbol=o.get("symbol", symbol),
                side=OrderSide[o.get("side", "BUY")],
                order_type=o.get("type", ""),
                quantity=float(o.get("origQty") or 0.0),
                stop_price=float(o.get("stopPrice") or 0.0),
                reduce_only=bool(o.get("reduceOnly", False)),
            )
            for o in orders
        ]

    async def get_open_positions(self) -> List[ExchangePosition]:
        positions = await self.rest.signed("GET", "/fapi/v2/positionRisk")
        result = []
        for p in positions:
            quantity = float(p.get("positionAmt") or 0.0)
            if quantity == 0:
                continue
            result.append(
                ExchangePosition(
                    symbol=p["symbol"],
                    quantity=quantity,
                    entry_price=float(p.get("entryPrice") or 0.0),
                    mark_price=float(p.get("markPrice") or 0.0),
                    unrealized_pnl=float(p.get("unRealizedProfit") or 0.0),
                    leverage=int(float(p.get("leverage") or 0)),
                )
            )
        return result

    async def get_balance(self) -> float:
        balances = await self.rest.signed("GET", "/fapi/v2/balance")
        for item in balances:
            if item.get("asset") == QUOTE_ASSET:
                return float(item.get("balance") or 0.0)
        raise ExchangeRejectionError(f"账户中没有 {QUOTE_ASSET} 余额")

    async def close(self):
        await self.rest.close()
