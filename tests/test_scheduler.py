#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
测试定时任务
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
from datetime import datetime, time, timedelta

import pytz

from engine.scheduler import next_daily_run, run_every

PRAGUE = pytz.timezone("Europe/Prague")


def test_next_run_later_today():
    now = PRAGUE.localize(datetime(2026, 5, 4, 9, 0))
    next_run = next_daily_run(now, time(16, 33), PRAGUE)
    assert next_run == PRAGUE.localize(datetime(2026, 5, 4, 16, 33))


def test_next_run_tomorrow_after_time_passed():
    now = PRAGUE.localize(datetime(2026, 5, 4, 17, 0))
    next_run = next_daily_run(now, time(16, 33), PRAGUE)
    assert next_run == PRAGUE.localize(datetime(2026, 5, 5, 16, 33))


def test_exact_time_schedules_next_day():
    now = PRAGUE.localize(datetime(2026, 5, 4, 16, 33))
    next_run = next_daily_run(now, time(16, 33), PRAGUE)
    assert next_run.date() == datetime(2026, 5, 5).date()


def test_next_run_converts_from_utc():
    """UTC 14:00 = 布拉格夏令时 16:00，当天16:33还没到"""
    now = pytz.utc.localize(datetime(2026, 7, 1, 14, 0))
    next_run = next_daily_run(now, time(16, 33), PRAGUE)
    assert next_run == PRAGUE.localize(datetime(2026, 7, 1, 16, 33))
    assert next_run - now == timedelta(minutes=33)


def test_next_run_across_dst_change():
    """夏令时切换当天仍按本地16:33执行"""
    now = PRAGUE.localize(datetime(2026, 3, 28, 17, 0))
    next_run = next_daily_run(now, time(16, 33), PRAGUE)

    assert next_run.strftime("%Y-%m-%d %H:%M") == "2026-03-29 16:33"
    assert next_run.utcoffset() == timedelta(hours=2)
    assert next_run - now == timedelta(hours=22, minutes=33)
    print("✓ 夏令时切换正确")


def test_run_every_survives_job_errors():
    calls = []

    async def job():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    async def _go():
        task = asyncio.create_task(run_every(0, job, "test"))
        while len(calls) < 3:
            await asyncio.sleep(0)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    asyncio.run(_go())
    assert len(calls) >= 3
