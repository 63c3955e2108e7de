# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : note.py
@Date    : 2025/11/25 10:41
"""
import sqlalchemy as sa

from sqlalchemy.orm import Mapped, mapped_column

from backend.common.model import Base


class Note(Base):
    """设备笔记表"""

    __tablename__ = 'f_note'

    mac: Mapped[str] = mapped_column(sa.String(32), primary_key=True, comment='设备 MAC')
    text: Mapped[str] = mapped_column(sa.Text, default='', comment='笔记内容')
