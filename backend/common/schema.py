#!/usr/bin/env python
# -*- coding: utf-8 -*-
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class SchemaBase(BaseModel):
    """基础模型配置"""

    model_config = ConfigDict(use_enum_values=True)


class CamelSchemaBase(SchemaBase):
    """
    设备侧模型配置

    输出字段为 camelCase，输入同时接受 camelCase 与 snake_case
    """

    model_config = ConfigDict(use_enum_values=True, alias_generator=to_camel, populate_by_name=True)
