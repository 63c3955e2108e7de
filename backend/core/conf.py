# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : conf.py
@Date    : 2025/11/25 10:12
"""
import os

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from backend.core.path_conf import BASE_PATH


class Settings(BaseSettings):
    """全局配置"""

    model_config = SettingsConfigDict(
        env_file=f'{BASE_PATH}/.env',
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=True,
    )

    # .env 环境
    ENVIRONMENT: Literal['dev', 'pro'] = 'dev'

    # FastAPI
    FASTAPI_API_PATH: str = '/api'
    FASTAPI_TITLE: str = 'calcfleet'
    FASTAPI_VERSION: str = '0.1.0'
    FASTAPI_DESCRIPTION: str = 'Calculator fleet device registry, pairing and OTA service'
    FASTAPI_DOCS_URL: str | None = '/docs'
    FASTAPI_OPENAPI_URL: str | None = '/openapi'

    # 关系型数据库（未配置时仅使用文件存储）
    DATABASE_URL: str | None = None
    DATABASE_CONNECT_TIMEOUT: float = 5.0
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 5

    # 文件存储根目录
    STORE_DIR: str = Field(default_factory=lambda: '/data' if os.path.isdir('/data') else os.getcwd())

    # 服务凭证
    DEVICES_SERVICE_TOKEN: str | None = None
    DASHBOARD_SERVICE_TOKEN: str | None = None
    SERVICE_TOKEN: str | None = None
    SERVICE_TOKEN_HEADER: str = 'X-Service-Token'

    # 固件源站
    FIRMWARE_ORIGIN_URL: str | None = Field(
        default=None,
        validation_alias=AliasChoices('FIRMWARE_ORIGIN_URL', 'MANAGEMENT_DASHBOARD_BASE'),
    )
    FIRMWARE_ORIGIN_TOKEN: str | None = None
    FIRMWARE_ORIGIN_PATH: str = '/api/devices/firmware/{version}'
    FIRMWARE_FETCH_TIMEOUT: float = 15.0
    FIRMWARE_PROBE_TIMEOUT: float = 3.0
    FIRMWARE_MAX_BYTES: int = 16 * 1024 * 1024
    FIRMWARE_CACHE_CONTROL: str = 'public, max-age=31536000, immutable'

    # 对外访问地址（用于生成固件下载链接）
    PUBLIC_BASE_URL: str | None = None

    # Token
    TOKEN_SECRET_KEY: str = Field(
        default='calcai-dev-secret',
        validation_alias=AliasChoices('TOKEN_SECRET_KEY', 'AUTH_SECRET', 'SESSION_SECRET'),
    )
    TOKEN_ALGORITHM: str = 'HS256'
    TOKEN_EXPIRE_SECONDS: int = 60 * 60 * 24 * 7
    WEB_TOKEN_EXPIRE_SECONDS: int = 60 * 60 * 24
    WEB_TOKEN_MAX_SIZE: int = 10_000

    # 密码
    PASSWORD_HASH_ITERATIONS: int = 120_000

    # 设备
    DEVICE_STALE_SECONDS: int = 300
    DEVICE_DEFAULT_MODEL: str = 'ESP32'
    DEVICE_NAME_PREFIX: str = 'CalcAI'
    DEVICE_LIST_LIMIT: int = 1000

    # 配对码
    PAIR_CODE_LENGTH: int = 6
    PAIR_CODE_ALPHABET: str = 'ABCDEFGHJKMNPQRSTUVWXYZ23456789'

    # 笔记
    NOTES_MAX_CHARS: int = 16_000

    # 摘要缓存
    DIGEST_CACHE_SIZE: int = 1024

    # 时区
    DATETIME_TIMEZONE: str = 'UTC'
    DATETIME_FORMAT: str = '%Y-%m-%d %H:%M:%S'

    # 日志
    LOG_LEVEL: str = 'INFO'
    LOG_FORMAT: str = (
        '<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | '
        '<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>'
    )
    LOG_FILE_ENABLED: bool = False
    LOG_ACCESS_FILENAME: str = 'fba_access.log'
    LOG_ERROR_FILENAME: str = 'fba_error.log'

    # CORS
    CORS_ALLOWED_ORIGINS: list[str] = ['*']
    CORS_EXPOSE_HEADERS: list[str] = ['ETag', 'X-Firmware-Sha256', 'Content-Disposition']

    @model_validator(mode='after')
    def check_database_url(self) -> 'Settings':
        """ 兼容 postgres:// 形式的连接串 """
        url = self.DATABASE_URL
        if not url:
            self.DATABASE_URL = None
        elif url.startswith('postgres://'):
            self.DATABASE_URL = 'postgresql+asyncpg://' + url[len('postgres://'):]
        elif url.startswith('postgresql://'):
            self.DATABASE_URL = 'postgresql+asyncpg://' + url[len('postgresql://'):]
        return self

    @property
    def admin_tokens(self) -> list[str]:
        """ 管理接口可接受的服务凭证 """
        return [t for t in (self.DASHBOARD_SERVICE_TOKEN, self.SERVICE_TOKEN) if t]

    @property
    def device_tokens(self) -> list[str]:
        """ 设备接口可接受的服务凭证 """
        return [self.DEVICES_SERVICE_TOKEN] if self.DEVICES_SERVICE_TOKEN else []

    @property
    def notes_tokens(self) -> list[str]:
        """ 笔记接口可接受的设备或服务凭证 """
        return [t for t in (self.DEVICES_SERVICE_TOKEN, self.DASHBOARD_SERVICE_TOKEN, self.SERVICE_TOKEN) if t]


@lru_cache
def get_settings() -> Settings:
    """获取全局配置"""
    return Settings()


# 创建配置实例
settings = get_settings()
