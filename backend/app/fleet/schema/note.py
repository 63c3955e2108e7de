# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : note.py
@Date    : 2025/12/05
"""
from enum import Enum

from pydantic import Field

from backend.common.schema import CamelSchemaBase


class NoteWriteMode(str, Enum):
    """笔记写入方式"""

    append = 'append'
    set = 'set'


class SaveNoteParam(CamelSchemaBase):
    """保存笔记参数"""

    text: str = Field(description='笔记内容')
    mode: NoteWriteMode = Field(NoteWriteMode.append, description='写入方式')
