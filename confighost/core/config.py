"""
宿主配置管理
使用 Pydantic Settings 管理宿主级别的环境变量和默认值
"""
from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class HostSettings(BaseSettings):
    """宿主配置（在应用配置之前解析）"""

    model_config = SettingsConfigDict(
        env_prefix="CONFIGHOST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== 宿主环境 =====
    ENVIRONMENT: str = "Production"
    APPLICATION_NAME: str = "confighost"
    CONTENT_ROOT: str = "."

    # ===== 服务器配置 =====
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    SHUTDOWN_TIMEOUT: int = 5  # 秒

    # ===== 日志配置 =====
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "console"

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """验证日志级别"""
        level = v.strip().upper()
        if level not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"LOG_LEVEL 无效: {v}")
        return level


@lru_cache
def get_settings() -> HostSettings:
    """获取配置单例"""
    return HostSettings()
