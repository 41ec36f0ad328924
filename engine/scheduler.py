# -*- coding: utf-8 -*-
"""
scheduler.py - 定时任务

每日定点任务（开仓、日报）和固定间隔任务（持仓监控）。
任务抛出的异常只记日志，循环继续。
"""

import asyncio
import logging
from datetime import datetime, time, timedelta
from typing import Awaitable, Callable

import pytz

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[object]]


def next_daily_run(now: datetime, at: time, tz) -> datetime:
    """now之后（不含）最近一次 at 时刻，返回tz本地时间"""
    local_now = now.astimezone(tz) if now.tzinfo else tz.localize(now)
    day = local_now.date()
    candidate = tz.localize(datetime.combine(day, at))
    if candidate <= local_now:
        candidate = tz.localize(datetime.combine(day + timedelta(days=1), at))
    return candidate


async def _run_job(name: str, job: Job) -> None:
    try:
        await job()
    except asyncio.CancelledError:
        raise
    except Exception:
        logger.exception(f"定时任务 {name} 执行失败")


async def run_daily(at: time, tz, job: Job, name: str = "daily") -> None:
    """每天 at 时刻（tz本地时间）执行一次 job，直到被取消"""
    if isinstance(tz, str):
        tz = pytz.timezone(tz)
    while True:
        now = datetime.now(tz)
        next_run = next_daily_run(now, at, tz)
        delay = (next_run - now).total_seconds()
        logger.info(f"定时任务 {name} 下次执行: {next_run.strftime('%Y-%m-%d %H:%M:%S %Z')}")
        await asyncio.sleep(max(delay, 0.0))
        await _run_job(name, job)


async def run_every(seconds: float, job: Job, name: str = "interval") -> None:
    """每隔 seconds 秒执行一次 job，直到被取消"""
    while True:
        await _run_job(name, job)
        await asyncio.sleep(seconds)
