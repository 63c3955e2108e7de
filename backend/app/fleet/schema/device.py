# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : device.py
@Date    : 2025/12/04
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import AliasChoices, Field

from backend.common.schema import CamelSchemaBase


class DeviceStatus(str, Enum):
    """连接状态"""

    online = 'online'
    offline = 'offline'


class UpdateState(str, Enum):
    """更新子状态"""

    idle = 'idle'
    pending = 'pending'
    applied = 'applied'


class RegisterDeviceParam(CamelSchemaBase):
    """设备注册参数"""

    mac: str = Field(validation_alias=AliasChoices('mac', 'address', 'deviceId'), description='设备 MAC')
    chip_id: Optional[str] = Field(None, validation_alias=AliasChoices('chipId', 'chip_id'), description='芯片 ID')
    model: Optional[str] = Field(None, description='设备型号')
    firmware: Optional[str] = Field(None, description='固件版本')
    name: Optional[str] = Field(None, description='设备名称')
    status: Optional[DeviceStatus] = Field(None, description='连接状态')
    first_seen: Optional[datetime] = Field(
        None, validation_alias=AliasChoices('firstSeen', 'first_seen'), description='首次上线时间'
    )


class PingDeviceParam(CamelSchemaBase):
    """设备心跳参数"""

    mac: str = Field(validation_alias=AliasChoices('mac', 'address', 'deviceId'), description='设备 MAC')
    firmware: Optional[str] = Field(None, description='当前固件版本')
    signal: Optional[int] = Field(None, validation_alias=AliasChoices('signal', 'rssi'), description='信号强度 RSSI')


class UpdateFlagsParam(CamelSchemaBase):
    """更新标记参数，未传的字段保持不变"""

    update_available: Optional[bool] = Field(None, description='是否有可用更新')
    target_firmware: Optional[str] = Field(None, description='目标固件版本，空字符串表示清除')


class GetDeviceDetail(CamelSchemaBase):
    """设备详情"""

    mac: str = Field(description='设备 MAC')
    chip_id: Optional[str] = Field(None, description='芯片 ID')
    model: Optional[str] = Field(None, description='设备型号')
    firmware: Optional[str] = Field(None, description='当前固件版本')
    name: Optional[str] = Field(None, description='设备名称')
    status: Optional[str] = Field(None, description='连接状态')
    signal: Optional[int] = Field(None, description='信号强度 RSSI')
    first_seen: Optional[datetime] = Field(None, description='首次上线时间')
    last_seen: Optional[datetime] = Field(None, description='最近上线时间')
    update_available: bool = Field(False, description='是否有可用更新')
    target_firmware: Optional[str] = Field(None, description='目标固件版本')
    update_state: UpdateState = Field(UpdateState.idle, description='更新子状态')
    last_update_status: Optional[str] = Field(None, description='最近更新状态')
    last_update_ping_at: Optional[datetime] = Field(None, description='最近心跳时间')
    update_status_time: Optional[datetime] = Field(None, description='更新状态变更时间')
    last_downloaded: Optional[str] = Field(None, description='最近下载的固件版本')
    last_downloaded_at: Optional[datetime] = Field(None, description='最近下载时间')
    owner: Optional[str] = Field(None, description='所属账户')
