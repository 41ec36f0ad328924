# -*- coding: utf-8 -*-
"""
errors.py - 交易所错误分类

ExchangeTransientError: 网络/限频/5xx，下个周期自然重试
ExchangeRejectionError: 订单被拒（数量/保证金/杠杆），中止本轮
"""

from typing import Optional

# Binance通用错误码中属于临时性的部分
TRANSIENT_CODES = frozenset({-1000, -1001, -1003, -1007, -1008, -1021})
TRANSIENT_STATUS = frozenset({408, 418, 429})


class ExchangeError(Exception):
    def __init__(self, message: str, code: Optional[int] = None, status: Optional[int] = None):
        super().__init__(message)
        self.code = code
        self.status = status


class ExchangeTransientError(ExchangeError):
    pass


class ExchangeRejectionError(ExchangeError):
    pass


def classify_error(status: int, code: Optional[int], message: str) -> ExchangeError:
    """根据HTTP状态码和交易所错误码生成对应异常"""
    text = f"HTTP {status} code={code}: {message}"
    if status >= 500 or status in TRANSIENT_STATUS or code in TRANSIENT_CODES:
        return ExchangeTransientError(text, code=code, status=status)
    return ExchangeRejectionError(text, code=code, status=status)
