# -*- coding: utf-8 -*-
"""
binance_rest.py - Binance USDⓈ-M 合约 REST 客户端

行情和下单共用同一个连接池；私有接口使用 HMAC-SHA256 签名。
"""

import asyncio
import hashlib
import hmac
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
import orjson

from config.system_config import SystemConfig
from .errors import ExchangeTransientError, classify_error

logger = logging.getLogger(__name__)


def _encode_params(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    encoded: Dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)
    return encoded


class BinanceRestClient:
    """Binance合约REST客户端"""

    def __init__(self, config: SystemConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.http_client = http_client
        self.rate_limiter = asyncio.Semaphore(config.MAX_CONNECTIONS)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            limits = httpx.Limits(
                max_connections=self.config.MAX_CONNECTIONS,
                max_keepalive_connections=max(1, self.config.MAX_CONNECTIONS // 2),
            )
            self.http_client = httpx.AsyncClient(
                base_url=self.config.REST_URL,
                timeout=httpx.Timeout(self.config.HTTP_TIMEOUT),
                headers={"X-MBX-APIKEY": self.config.API_KEY},
                limits=limits,
            )
            logger.info(f"Binance REST客户端已初始化: {self.config.REST_URL}")
        return self.http_client

    def _sign(self, query: str) -> str:
        return hmac.new(
            self.config.API_SECRET.encode(), query.encode(), hashlib.sha256
        ).hexdigest()

    async def public(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        query = urlencode(_encode_params(params))
        return await self._send(method, path, query)

    async def signed(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        encoded = _encode_params(params)
        encoded["recvWindow"] = str(self.config.RECV_WINDOW)
        encoded["timestamp"] = str(int(time.time() * 1000))
        query = urlencode(encoded)
        query = f"{query}&signature={self._sign(query)}"
        return await self._send(method, path, query)

    async def _send(self, method: str, path: str, query: str) -> Any:
        client = await self._ensure_client()
        url = f"{path}?{query}" if query else path

        async with self.rate_limiter:
            try:
                response = await client.request(method, url)
            except httpx.TransportError as e:
                raise ExchangeTransientError(f"{method} {path} 网络异常: {type(e).__name__}: {e}") from e

        if response.status_code != 200:
            code, msg = self._parse_error(response)
            error = classify_error(response.status_code, code, msg)
            logger.warning(f"{method} {path} 失败: {error}")
            raise error

        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise ExchangeTransientError(f"{method} {path} 响应解析失败: {e}") from e

    @staticmethod
    def _parse_error(response: httpx.Response):
        try:
            body = orjson.loads(response.content)
        except orjson.JSONDecodeError:
            return None, response.text[:300]
        if isinstance(body, dict):
            return body.get("code"), str(body.get("msg", ""))
        return None, str(body)[:300]

    async def close(self):
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None
