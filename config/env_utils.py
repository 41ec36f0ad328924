# -*- coding: utf-8 -*-
"""
env_utils.py - 从环境变量读取配置的辅助函数
"""

import os
from typing import Callable, List, Optional, TypeVar

from dotenv import load_dotenv

T = TypeVar("T")

_TRUE_VALUES = ("1", "true", "yes", "y", "on")
_FALSE_VALUES = ("0", "false", "no", "n", "off")


class EnvVarError(ValueError):
    """环境变量无法解析"""

    def __init__(self, var_name: str, message: str, value: Optional[str] = None):
        super().__init__(f"{var_name}: {message}")
        self.var_name = var_name
        self.value = value


def load_env(env_file: Optional[str] = None) -> None:
    """加载.env文件（已存在的环境变量不会被覆盖）"""
    load_dotenv(env_file, override=False)


def _raw(var_name: str) -> Optional[str]:
    raw = os.getenv(var_name)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def env_value(var_name: str, cast: Callable[[str], T], default: T) -> T:
    value = _raw(var_name)
    if value is None:
        return default
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise EnvVarError(var_name, f"无法解析: {value!r}", value) from None


def env_str(var_name: str, default: str = "") -> str:
    return env_value(var_name, str, default)


def env_int(var_name: str, default: int) -> int:
    return env_value(var_name, int, default)


def env_float(var_name: str, default: float) -> float:
    return env_value(var_name, float, default)


def env_bool(var_name: str, default: bool) -> bool:
    value = _raw(var_name)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise EnvVarError(var_name, f"不是布尔值: {value!r}", value)


def env_list(var_name: str, default: List[str]) -> List[str]:
    value = _raw(var_name)
    if value is None:
        return list(default)
    return [item.strip().upper() for item in value.split(",") if item.strip()]
