#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
测试通知: 发完即走、失败不影响调用方、Telegram消息格式
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio

import httpx
import orjson

from config.system_config import SystemConfig
from models.enums import NotifyCategory
from notification.base import LogNotifier, Notifier
from notification.telegram_notifier import TelegramNotifier

from fakes import RecordingNotifier

TELEGRAM_CONFIG = SystemConfig(TELEGRAM_BOT_TOKEN="123:abc", TELEGRAM_CHAT_ID="42")


class BrokenNotifier(Notifier):
    async def send(self, category, payload):
        raise RuntimeError("network down")


def test_notify_is_fire_and_forget():
    notifier = RecordingNotifier()

    async def _go():
        notifier.notify(NotifyCategory.ENTRY, {"合约": "BTCUSDT"})
        # 尚未发送
        assert notifier.messages == []
        await notifier.drain()

    asyncio.run(_go())
    assert notifier.categories() == [NotifyCategory.ENTRY]
    assert notifier.sent_count == 1


def test_send_failure_is_swallowed():
    notifier = BrokenNotifier()

    async def _go():
        notifier.notify(NotifyCategory.ERROR, {"错误": "x"})
        await notifier.drain()

    asyncio.run(_go())
    assert notifier.failed_count == 1
    assert notifier.sent_count == 0


def test_notify_without_loop_is_dropped():
    notifier = RecordingNotifier()
    notifier.notify(NotifyCategory.STARTUP, {})
    assert notifier.messages == []


def test_log_notifier():
    notifier = LogNotifier()

    async def _go():
        notifier.notify(NotifyCategory.CRITICAL, {"合约": "BTCUSDT"})
        await notifier.close()

    asyncio.run(_go())
    assert notifier.sent_count == 1


def test_telegram_send_message():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, content=orjson.dumps({"ok": True, "result": {}}))

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = TelegramNotifier(TELEGRAM_CONFIG, http_client=client)

    async def _go():
        notifier.notify(NotifyCategory.ENTRY, {"合约": "BTCUSDT", "开仓价": 42000.5})
        await notifier.close()

    asyncio.run(_go())

    assert len(requests) == 1
    request = requests[0]
    assert request.url.path == "/bot123:abc/sendMessage"
    body = orjson.loads(request.content)
    assert body["chat_id"] == "42"
    assert body["parse_mode"] == "HTML"
    assert "开仓成交" in body["text"]
    assert "<code>BTCUSDT</code>" in body["text"]
    assert "42,000.5" in body["text"]
    assert notifier.sent_count == 1


def test_telegram_error_counted():
    def handler(request):
        return httpx.Response(400, content=orjson.dumps({"ok": False, "description": "chat not found"}))

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = TelegramNotifier(TELEGRAM_CONFIG, http_client=client)

    async def _go():
        notifier.notify(NotifyCategory.ERROR, {"错误": "x"})
        await notifier.drain()

    asyncio.run(_go())
    assert notifier.failed_count == 1


def test_telegram_disabled_skips_request():
    def handler(request):
        raise AssertionError("不应发送请求")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = TelegramNotifier(SystemConfig(), http_client=client)

    async def _go():
        notifier.notify(NotifyCategory.REPORT, {"总交易": 0})
        await notifier.drain()

    asyncio.run(_go())
    assert notifier.failed_count == 0
