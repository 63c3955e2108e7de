# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : device.py
@Date    : 2025/11/25 10:41
"""
from datetime import datetime

import sqlalchemy as sa

from sqlalchemy.orm import Mapped, mapped_column

from backend.common.model import Base, TimeZone


class Device(Base):
    """设备表"""

    __tablename__ = 'f_device'

    mac: Mapped[str] = mapped_column(sa.String(32), primary_key=True, comment='设备 MAC（小写十六进制）')

    chip_id: Mapped[str | None] = mapped_column(sa.String(64), default=None, comment='芯片 ID')
    model: Mapped[str | None] = mapped_column(sa.String(64), default=None, comment='设备型号')
    firmware: Mapped[str | None] = mapped_column(sa.String(64), default=None, comment='当前固件版本')
    name: Mapped[str | None] = mapped_column(sa.String(128), default=None, comment='设备名称')
    status: Mapped[str | None] = mapped_column(sa.String(16), default=None, comment='连接状态')
    signal: Mapped[int | None] = mapped_column(sa.Integer, default=None, comment='信号强度 RSSI')
    first_seen: Mapped[datetime | None] = mapped_column(TimeZone, default=None, comment='首次上线时间')
    last_seen: Mapped[datetime | None] = mapped_column(TimeZone, default=None, comment='最近上线时间')
    update_available: Mapped[bool | None] = mapped_column(sa.Boolean, default=False, comment='是否有可用更新')
    target_firmware: Mapped[str | None] = mapped_column(sa.String(64), default=None, comment='目标固件版本')
    last_update_status: Mapped[str | None] = mapped_column(sa.String(16), default=None, comment='最近更新状态')
    last_update_ping_at: Mapped[datetime | None] = mapped_column(TimeZone, default=None, comment='最近心跳时间')
    update_status_time: Mapped[datetime | None] = mapped_column(TimeZone, default=None, comment='更新状态变更时间')
    last_downloaded: Mapped[str | None] = mapped_column(sa.String(64), default=None, comment='最近下载的固件版本')
    last_downloaded_at: Mapped[datetime | None] = mapped_column(TimeZone, default=None, comment='最近下载时间')
