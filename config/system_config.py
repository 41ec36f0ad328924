from dataclasses import dataclass
from typing import Optional

from config.env_utils import env_float, env_int, env_str, load_env


@dataclass
class SystemConfig:
    REST_URL: str = "https://fapi.binance.com"
    API_KEY: str = ""
    API_SECRET: str = ""
    RECV_WINDOW: int = 5000
    HTTP_TIMEOUT: float = 10.0
    MAX_CONNECTIONS: int = 8
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""
    TIMEZONE: str = "Europe/Prague"
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    def __post_init__(self):
        self.REST_URL = self.REST_URL.rstrip("/")
        if self.HTTP_TIMEOUT <= 0:
            raise ValueError("HTTP_TIMEOUT必须为正数")
        if self.MAX_CONNECTIONS < 1:
            raise ValueError("MAX_CONNECTIONS至少为1")

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.TELEGRAM_BOT_TOKEN and self.TELEGRAM_CHAT_ID)

    def require_credentials(self) -> None:
        """实盘前检查API密钥"""
        if not self.API_KEY or not self.API_SECRET:
            raise ValueError(
                "请先配置Binance API密钥!\n"
                "1. 复制 .env.example 为 .env\n"
                "2. 填写 BINANCE_API_KEY 和 BINANCE_API_SECRET"
            )

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "SystemConfig":
        load_env(env_file)
        return cls(
            REST_URL=env_str("BINANCE_REST_URL", cls.REST_URL),
            API_KEY=env_str("BINANCE_API_KEY"),
            API_SECRET=env_str("BINANCE_API_SECRET"),
            RECV_WINDOW=env_int("BINANCE_RECV_WINDOW", cls.RECV_WINDOW),
            HTTP_TIMEOUT=env_float("HTTP_TIMEOUT", cls.HTTP_TIMEOUT),
            MAX_CONNECTIONS=env_int("MAX_CONNECTIONS", cls.MAX_CONNECTIONS),
            TELEGRAM_BOT_TOKEN=env_str("TELEGRAM_BOT_TOKEN"),
            TELEGRAM_CHAT_ID=env_str("TELEGRAM_CHAT_ID"),
            TIMEZONE=env_str("TIMEZONE", cls.TIMEZONE),
            LOG_LEVEL=env_str("LOG_LEVEL", cls.LOG_LEVEL).upper(),
            LOG_DIR=env_str("LOG_DIR", cls.LOG_DIR),
        )
