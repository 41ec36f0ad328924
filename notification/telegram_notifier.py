# -*- coding: utf-8 -*-
"""
telegram_notifier.py - Telegram推送
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import httpx
import orjson
import pytz

from config.system_config import SystemConfig
from models.enums import NotifyCategory
from .base import Notifier

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"

_TITLES = {
    NotifyCategory.ENTRY: "🟢 <b>开仓成交</b>",
    NotifyCategory.CLOSE: "🔄 <b>持仓已平仓</b>",
    NotifyCategory.ERROR: "🚨 <b>交易机器人错误</b>",
    NotifyCategory.CRITICAL: "🛑 <b>风险敞口告警 - 需要人工介入</b>",
    NotifyCategory.STARTUP: "🤖 <b>交易机器人已启动</b>",
    NotifyCategory.REPORT: "📊 <b>每日交易报告</b>",
}


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:,.4f}".rstrip("0").rstrip(".")
    return str(value)


class TelegramNotifier(Notifier):
    """Telegram Bot API sendMessage"""

    def __init__(self, config: SystemConfig, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__()
        self.config = config
        self.http_client = http_client
        self.tz = pytz.timezone(config.TIMEZONE)
        self.base_url = f"{TELEGRAM_API}/bot{config.TELEGRAM_BOT_TOKEN}"

        if not config.telegram_enabled:
            logger.warning("未配置Telegram，通知已禁用")

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(timeout=httpx.Timeout(self.config.HTTP_TIMEOUT))
        return self.http_client

    def format_message(self, category: NotifyCategory, payload: Dict[str, Any]) -> str:
        now = datetime.now(self.tz).strftime("%Y-%m-%d %H:%M:%S")
        lines = [_TITLES[category], ""]
        for key, value in payload.items():
            lines.append(f"{key}: <code>{_format_value(value)}</code>")
        lines.append("")
        lines.append(f"⏰ {now} ({self.config.TIMEZONE})")
        return "\n".join(lines)

    async def send(self, category: NotifyCategory, payload: Dict[str, Any]) -> None:
        if not self.config.telegram_enabled:
            logger.info(f"[通知:{category.name}] Telegram未配置，跳过: {payload}")
            return

        client = await self._ensure_client()
        body = {
            "chat_id": self.config.TELEGRAM_CHAT_ID,
            "text": self.format_message(category, payload),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        response = await client.post(
            f"{self.base_url}/sendMessage",
            content=orjson.dumps(body),
            headers={"Content-Type": "application/json"},
        )
        result = orjson.loads(response.content)
        if response.status_code != 200 or not result.get("ok"):
            raise RuntimeError(f"Telegram返回错误: HTTP {response.status_code} {result}")
        logger.info(f"Telegram通知已发送: {category.name}")

    async def test_connection(self) -> bool:
        if not self.config.telegram_enabled:
            logger.error("Telegram未配置")
            return False
        client = await self._ensure_client()
        try:
            response = await client.get(f"{self.base_url}/getMe")
        except httpx.HTTPError as e:
            logger.error(f"Telegram连接测试失败: {e}")
            return False
        ok = response.status_code == 200 and orjson.loads(response.content).get("ok", False)
        if ok:
            logger.info("Telegram连接测试成功")
        return ok

    async def close(self):
        await super().close()
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None
