# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : account.py
@Date    : 2025/12/05
"""
from typing import Optional

from pydantic import Field

from backend.common.schema import CamelSchemaBase


class LoginParam(CamelSchemaBase):
    """登录参数"""

    username: str = Field(min_length=1, max_length=64, description='用户名')
    password: str = Field(min_length=1, max_length=256, description='密码')


class RegisterParam(LoginParam):
    """注册并认领设备参数"""

    code: str = Field(min_length=1, description='配对码')


class GetAccountDetail(CamelSchemaBase):
    """账户信息"""

    username: str = Field(description='用户名')
    macs: list[str] = Field(default_factory=list, description='名下设备')


class GetTokenDetail(GetAccountDetail):
    """登录结果"""

    token: str = Field(description='账户 token')
    mac: Optional[str] = Field(None, description='本次认领的设备')


class GetOwnerDetail(CamelSchemaBase):
    """设备归属"""

    mac: str = Field(description='设备 MAC')
    username: Optional[str] = Field(None, description='所属账户')


class GetPasswordResetDetail(CamelSchemaBase):
    """重置密码结果"""

    mac: str = Field(description='设备 MAC')
    username: str = Field(description='用户名')
    temp_password: str = Field(description='临时密码')
