# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : admin.py
@Date    : 2025/12/09 15:30
"""
from typing import Annotated

from fastapi import APIRouter, Path

from backend.app.fleet.schema.account import GetOwnerDetail, GetPasswordResetDetail
from backend.app.fleet.service.account import account_service
from backend.common.response.response_schema import ResponseSchemaModel, response_base
from backend.common.security.service_token import DependsServiceToken

router = APIRouter(dependencies=[DependsServiceToken])


@router.get("/devices/{mac}/owner", summary="获取设备归属")
async def get_owner(mac: Annotated[str, Path(description="设备 MAC")]) -> ResponseSchemaModel[GetOwnerDetail]:
    data = await account_service.get_owner(mac=mac)
    return response_base.success(data=data)


@router.delete("/devices/{mac}/owner", summary="解除设备归属")
async def release_owner(mac: Annotated[str, Path(description="设备 MAC")]) -> ResponseSchemaModel[GetOwnerDetail]:
    data = await account_service.release(mac=mac)
    return response_base.success(data=data)


@router.post("/devices/{mac}/reset-password", summary="重置设备所属账户密码")
async def reset_password(
        mac: Annotated[str, Path(description="设备 MAC")],
) -> ResponseSchemaModel[GetPasswordResetDetail]:
    data = await account_service.reset_password(mac=mac)
    return response_base.success(data=data)
