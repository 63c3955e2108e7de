# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : auth.py
@Date    : 2025/12/09 15:00
"""
from fastapi import APIRouter

from backend.app.fleet.schema.account import GetAccountDetail, GetTokenDetail, LoginParam, RegisterParam
from backend.app.fleet.service.account import account_service
from backend.common.response.response_schema import ResponseSchemaModel, response_base
from backend.common.security.jwt import DependsAccount, TokenPayload

router = APIRouter()


@router.post("/register", summary="凭配对码注册并认领设备")
async def register(obj: RegisterParam) -> ResponseSchemaModel[GetTokenDetail]:
    data = await account_service.register(obj=obj)
    return response_base.success(data=data)


@router.post("/login", summary="账户登录")
async def login(obj: LoginParam) -> ResponseSchemaModel[GetTokenDetail]:
    data = await account_service.login(obj=obj)
    return response_base.success(data=data)


@router.get("/whoami", summary="当前账户")
async def whoami(payload: TokenPayload = DependsAccount) -> ResponseSchemaModel[GetAccountDetail]:
    data = account_service.whoami(payload)
    return response_base.success(data=data)
