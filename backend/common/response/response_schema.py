#!/usr/bin/env python
# -*- coding: utf-8 -*-
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from backend.common.response.response_code import CustomResponseCode

SchemaT = TypeVar('SchemaT')


class ResponseModel(BaseModel):
    """
    不包含返回数据 schema 的通用型统一返回模型

    示例::

        @router.get('/test', response_model=ResponseModel)
        def test():
            return ResponseModel(data={'test': 'test'})

        @router.get('/test')
        def test() -> ResponseModel:
            return ResponseModel(data={'test': 'test'})
    """

    code: int = Field(CustomResponseCode.HTTP_200.code, description='返回状态码')
    msg: str = Field(CustomResponseCode.HTTP_200.msg, description='返回信息')
    data: Any | None = Field(None, description='返回数据')


class ResponseSchemaModel(ResponseModel, Generic[SchemaT]):
    """
    包含返回数据 schema 的通用型统一返回模型

    示例::

        @router.get('/test')
        def test() -> ResponseSchemaModel[GetDeviceDetail]:
            return ResponseSchemaModel[GetDeviceDetail](data=GetDeviceDetail(...))
    """

    data: SchemaT


class ResponseBase:
    """统一返回方法"""

    @staticmethod
    def __response(*, res: CustomResponseCode, data: Any | None = None) -> ResponseModel:
        """
        请求返回通用方法

        :param res: 返回信息
        :param data: 返回数据
        :return:
        """
        return ResponseModel(code=res.code, msg=res.msg, data=data)

    def success(self, *, res: CustomResponseCode = CustomResponseCode.HTTP_200, data: Any | None = None) -> ResponseModel:
        """
        成功响应

        :param res: 返回信息
        :param data: 返回数据
        :return:
        """
        return self.__response(res=res, data=data)


response_base: ResponseBase = ResponseBase()
