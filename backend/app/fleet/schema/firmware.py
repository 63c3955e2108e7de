# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : firmware.py
@Date    : 2025/12/05
"""
import base64
import binascii

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field, field_validator

from backend.common.schema import CamelSchemaBase


class UploadFirmwareParam(CamelSchemaBase):
    """上传固件参数"""

    version: str = Field(min_length=1, description='固件版本')
    data: bytes = Field(
        validation_alias=AliasChoices('data', 'base64', 'firmware', 'file'),
        description='Base64 编码的固件内容',
    )
    description: Optional[str] = Field(None, max_length=1024, description='版本说明')

    @field_validator('data', mode='before')
    @classmethod
    def decode_base64(cls, value):
        if isinstance(value, str):
            # 兼容 data URL 形式
            if value.startswith('data:') and ',' in value:
                value = value.split(',', 1)[1]
            try:
                return base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ValueError('invalid base64 payload') from e
        return value

    @field_validator('data')
    @classmethod
    def check_not_empty(cls, value: bytes) -> bytes:
        if not value:
            raise ValueError('firmware payload is empty')
        return value


class GetFirmwareDetail(CamelSchemaBase):
    """固件详情"""

    version: str = Field(description='固件版本')
    size: int = Field(description='字节数')
    sha256: Optional[str] = Field(None, description='SHA-256 摘要')
    description: Optional[str] = Field(None, description='版本说明')
    created_time: Optional[datetime] = Field(None, description='发布时间')


class GetCheckUpdateDetail(CamelSchemaBase):
    """更新检查结果"""

    update_available: bool = Field(description='是否有可用更新')
    version: Optional[str] = Field(None, description='目标版本')
    download_url: Optional[str] = Field(None, description='下载地址')
    sha256: Optional[str] = Field(None, description='SHA-256 摘要')
    size: Optional[int] = Field(None, description='字节数')
