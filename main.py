#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
main.py - Binance合约趋势动量交易机器人

运行方式:
    python main.py              # 定时运行（每日开仓 + 每分钟监控 + 每日报告）
    python main.py --once       # 立即执行一次开仓检查后退出
    python main.py --status     # 打印账户和持仓状态
    python main.py --test-long  # 测试开多（需要输入YES确认）
    python main.py --test-short # 测试开空

⚠️ 警告：这是真实交易脚本，会使用真金白银！
使用前请确保：
1. 已在 .env 中配置 BINANCE_API_KEY / BINANCE_API_SECRET
2. 已充分理解策略逻辑和风险
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from datetime import datetime

from config.env_utils import EnvVarError
from config.strategy_config import SignalConfig
from config.system_config import SystemConfig
from config.trading_config import TradingConfig
from engine.scheduler import run_daily, run_every
from execution.binance_executor import BinanceOrderExecutor
from execution.binance_rest import BinanceRestClient
from execution.errors import ExchangeError
from market.binance_feed import BinanceMarketFeed
from models.enums import SignalAction
from notification.base import LogNotifier
from notification.telegram_notifier import TelegramNotifier
from trend_trading_system import TrendTradingSystem

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Binance合约 EMA+RSI 趋势动量交易机器人")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--test-long", action="store_true", help="立即测试开多")
    group.add_argument("--test-short", action="store_true", help="立即测试开空")
    group.add_argument("--status", action="store_true", help="打印状态后退出")
    group.add_argument("--once", action="store_true", help="立即执行一次开仓检查后退出")
    parser.add_argument("--yes", action="store_true", help="测试交易跳过确认")
    parser.add_argument("--env-file", default=None, help="指定 .env 文件路径")
    return parser.parse_args(argv)


def setup_logging(config: SystemConfig) -> None:
    os.makedirs(config.LOG_DIR, exist_ok=True)
    log_file = os.path.join(
        config.LOG_DIR, f'trend_bot_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log'
    )
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler()
        ]
    )
    # httpx每个请求都会打INFO日志
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_system(
    sys_config: SystemConfig,
    trading_config: TradingConfig,
    signal_config: SignalConfig,
) -> TrendTradingSystem:
    rest = BinanceRestClient(sys_config)
    feed = BinanceMarketFeed(sys_config, rest)
    executor = BinanceOrderExecutor(sys_config, rest)
    notifier = TelegramNotifier(sys_config) if sys_config.telegram_enabled else LogNotifier()
    return TrendTradingSystem(
        feed=feed,
        executor=executor,
        notifier=notifier,
        trading_config=trading_config,
        signal_config=signal_config,
        timezone=sys_config.TIMEZONE,
    )


def confirm_live_trade(action: SignalAction) -> bool:
    print("\n⚠️  这是真实交易，会使用真金白银！")
    print(f"即将立即开仓: {action.name}")
    confirm = input("\n输入 'YES' 继续，其他任意键取消: ")
    return confirm == 'YES'


def install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows不支持，依赖KeyboardInterrupt
            pass


async def run_scheduled(system: TrendTradingSystem, trading_config: TradingConfig, tz: str) -> None:
    stop_event = asyncio.Event()
    install_signal_handlers(stop_event)

    tasks = [
        asyncio.create_task(run_daily(trading_config.entry_time, tz, system.run_entry_cycle, "开仓")),
        asyncio.create_task(run_daily(trading_config.report_time, tz, system.send_daily_report, "日报")),
        asyncio.create_task(
            run_every(trading_config.MONITOR_INTERVAL_SECONDS, system.monitor_positions, "持仓监控")
        ),
    ]
    logger.info("定时任务已启动，按 Ctrl+C 退出")

    await stop_event.wait()
    logger.info("收到退出信号，正在安全退出...")

    # 先等进行中的开仓流程结束再取消定时任务
    await system.engine.stop()
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        sys_config = SystemConfig.from_env(args.env_file)
        trading_config = TradingConfig.from_env(args.env_file)
        signal_config = SignalConfig.from_env(args.env_file)
    except (EnvVarError, ValueError) as e:
        print(f"✗ 配置错误: {e}")
        return 1

    setup_logging(sys_config)

    try:
        sys_config.require_credentials()
    except ValueError as e:
        print(f"✗ {e}")
        return 1

    test_action = SignalAction.NONE
    if args.test_long:
        test_action = SignalAction.LONG
    elif args.test_short:
        test_action = SignalAction.SHORT

    if test_action != SignalAction.NONE and not args.yes and not confirm_live_trade(test_action):
        print("\n✗ 已取消")
        return 0

    print("\n" + "=" * 80)
    print("Binance 合约趋势动量交易机器人")
    print("=" * 80)
    print(f"标的: {', '.join(trading_config.SYMBOLS)}")
    print(f"K线: {signal_config.candle_interval} x {signal_config.lookback}")
    print(f"杠杆: {signal_config.base_leverage}x / {signal_config.high_leverage}x")
    print(f"止盈/止损: {trading_config.TAKE_PROFIT_POINTS} / {trading_config.STOP_LOSS_POINTS} 点")
    print(f"开仓时间: 每日 {trading_config.ENTRY_TIME} ({sys_config.TIMEZONE})")
    print("=" * 80)

    system = build_system(sys_config, trading_config, signal_config)
    exit_code = 0
    try:
        await system.initialize()

        if args.status:
            system.print_status()
        elif test_action != SignalAction.NONE:
            symbol = trading_config.SYMBOLS[0]
            result = await system.execute_test_trade(symbol, test_action)
            print(f"\n测试交易结果: {result.outcome.name} {result.reason}")
            system.print_status()
        elif args.once:
            for result in await system.run_entry_cycle():
                print(f"{result.symbol}: {result.outcome.name} {result.reason}")
        else:
            await run_scheduled(system, trading_config, sys_config.TIMEZONE)

    except KeyboardInterrupt:
        print("\n\n收到中断信号，正在安全退出...")
    except ExchangeError as e:
        logger.error(f"交易所错误: {e}", exc_info=True)
        exit_code = 1
    finally:
        await system.shutdown()
        print("\n" + "=" * 80)
        print("交易系统已停止")
        print("=" * 80)

    return exit_code


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
