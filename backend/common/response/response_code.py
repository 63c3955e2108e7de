#!/usr/bin/env python
# -*- coding: utf-8 -*-
from enum import Enum


class CustomCodeBase(Enum):
    """自定义状态码基类"""

    @property
    def code(self) -> int:
        """获取状态码"""
        return self.value[0]

    @property
    def msg(self) -> str:
        """获取状态码信息"""
        return self.value[1]


class CustomResponseCode(CustomCodeBase):
    """自定义响应状态码"""

    HTTP_200 = (200, 'ok')
    HTTP_400 = (400, 'bad_input')
    HTTP_500 = (500, 'server_error')
