# -*- coding: utf-8 -*-
"""
notification/base.py

通知基类 - 发完即走，失败只记日志，不影响交易流程
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Set

from models.enums import NotifyCategory

logger = logging.getLogger(__name__)


class Notifier(ABC):
    """通知基类"""

    def __init__(self):
        self._pending: Set[asyncio.Task] = set()
        self.sent_count = 0
        self.failed_count = 0

    @abstractmethod
    async def send(self, category: NotifyCategory, payload: Dict[str, Any]) -> None:
        """实际发送，允许抛异常"""
        pass

    def notify(self, category: NotifyCategory, payload: Dict[str, Any]) -> None:
        """非阻塞发送；没有运行中的事件循环时直接丢弃并记日志"""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"无事件循环，跳过通知: {category.name}")
            return

        task = loop.create_task(self._safe_send(category, dict(payload)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _safe_send(self, category: NotifyCategory, payload: Dict[str, Any]) -> None:
        try:
            await self.send(category, payload)
            self.sent_count += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failed_count += 1
            logger.error(f"通知发送失败 [{category.name}]: {type(e).__name__}: {e}")

    async def drain(self) -> None:
        """等待所有未完成的通知"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self):
        await self.drain()


class LogNotifier(Notifier):
    """未配置推送渠道时只写日志"""

    async def send(self, category: NotifyCategory, payload: Dict[str, Any]) -> None:
        level = logging.CRITICAL if category == NotifyCategory.CRITICAL else logging.INFO
        logger.log(level, f"[通知:{category.name}] {payload}")
