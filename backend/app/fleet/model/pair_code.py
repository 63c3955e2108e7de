# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : pair_code.py
@Date    : 2025/11/25 10:41
"""
import sqlalchemy as sa

from sqlalchemy.orm import Mapped, mapped_column

from backend.common.model import Base


class PairCode(Base):
    """设备配对码表"""

    __tablename__ = 'f_pair_code'

    mac: Mapped[str] = mapped_column(sa.String(32), primary_key=True, comment='设备 MAC')
    code: Mapped[str] = mapped_column(sa.String(16), unique=True, index=True, comment='配对码（大写）')
