# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : account.py
@Date    : 2025/11/25 10:41
"""
from datetime import datetime

import sqlalchemy as sa

from sqlalchemy.orm import Mapped, mapped_column

from backend.common.model import Base, TimeZone, id_key
from backend.utils.timezone import timezone


class Account(Base):
    """账户表"""

    __tablename__ = 'f_account'

    id: Mapped[id_key] = mapped_column(init=False)
    username: Mapped[str] = mapped_column(sa.String(64), unique=True, index=True, comment='用户名')
    password_hash: Mapped[str] = mapped_column(sa.String(256), comment='密码哈希')


class DeviceOwner(Base):
    """设备归属表"""

    __tablename__ = 'f_device_owner'

    mac: Mapped[str] = mapped_column(sa.String(32), primary_key=True, comment='设备 MAC')
    username: Mapped[str] = mapped_column(sa.String(64), index=True, comment='所属账户')
    claimed_time: Mapped[datetime] = mapped_column(TimeZone, default_factory=timezone.now, comment='认领时间')
