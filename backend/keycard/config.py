"""
应用配置
从环境变量 / .env 读取配置
"""
from decimal import Decimal
from typing import List
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用设置"""

    # 应用基础配置
    APP_NAME: str = "KeyCard"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 数据库配置
    DATABASE_URL: str = "sqlite:///./keycard.db"
    # SQLite 写锁等待时间（秒），并发创建预订时排队而不是报错
    SQLITE_BUSY_TIMEOUT: int = 30

    # JWT 配置
    SECRET_KEY: str = "keycard-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # 业务配置
    CONFIRMATION_CODE_PREFIX: str = "KCN"
    INVOICE_TAX_RATE: Decimal = Decimal("0.10")
    KEY_CHECKOUT_HOUR: int = 12

    CORS_ORIGINS: List[str] = ["*"]

    model_config = ConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


# 全局设置实例
settings = Settings()
