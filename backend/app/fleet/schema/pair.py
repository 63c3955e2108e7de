# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : pair.py
@Date    : 2025/12/05
"""
from typing import Optional

from pydantic import AliasChoices, Field

from backend.common.schema import CamelSchemaBase


class StartPairParam(CamelSchemaBase):
    """获取配对码参数"""

    mac: str = Field(validation_alias=AliasChoices('mac', 'address', 'deviceId'), description='设备 MAC')


class ClaimPairParam(CamelSchemaBase):
    """浏览器认领参数"""

    code: str = Field(min_length=1, description='配对码')


class GetPairResolveDetail(CamelSchemaBase):
    """配对码解析结果"""

    mac: str = Field(description='设备 MAC')
    claimed: bool = Field(description='是否已被认领')
    owner: Optional[str] = Field(None, description='所属账户')


class GetPairClaimDetail(CamelSchemaBase):
    """浏览器认领结果"""

    mac: str = Field(description='设备 MAC')
    web_token: str = Field(description='浏览器会话 token')


class GetPairResetDetail(CamelSchemaBase):
    """配对重置结果"""

    mac: str = Field(description='设备 MAC')
    code: str = Field(description='新的配对码')
    revoked_tokens: int = Field(0, description='失效的浏览器会话数')
