# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : device.py
@Date    : 2025/12/09 10:00
"""
from typing import Annotated

from fastapi import APIRouter, Path

from backend.app.fleet.schema.device import GetDeviceDetail, PingDeviceParam, RegisterDeviceParam, UpdateFlagsParam
from backend.app.fleet.service.device import device_registry
from backend.common.response.response_schema import ResponseSchemaModel, response_base
from backend.common.security.service_token import DependsDeviceToken, DependsServiceToken

router = APIRouter()


# =============================
# 设备注册
# =============================
@router.post(
    "/register",
    summary="设备注册",
    dependencies=[DependsDeviceToken],
)
@router.post(
    "/register-public",
    summary="设备注册（兼容旧固件）",
    dependencies=[DependsDeviceToken],
    include_in_schema=False,
)
async def register_device(obj: RegisterDeviceParam) -> ResponseSchemaModel[GetDeviceDetail]:
    data = await device_registry.upsert(obj=obj)
    return response_base.success(data=data)


# =============================
# 设备心跳
# =============================
@router.post(
    "/ping",
    summary="设备心跳",
    dependencies=[DependsDeviceToken],
)
async def ping_device(obj: PingDeviceParam) -> ResponseSchemaModel[GetDeviceDetail]:
    data = await device_registry.ping(obj=obj)
    return response_base.success(data=data)


# =============================
# 设备列表
# =============================
@router.get(
    "",
    summary="获取全部设备",
    dependencies=[DependsServiceToken],
)
async def get_all_devices() -> ResponseSchemaModel[list[GetDeviceDetail]]:
    data = await device_registry.list()
    return response_base.success(data=data)


# =============================
# 设备详情
# =============================
@router.get(
    "/{mac}",
    summary="获取设备详情",
    dependencies=[DependsServiceToken],
)
async def get_device(mac: Annotated[str, Path(description="设备 MAC")]) -> ResponseSchemaModel[GetDeviceDetail]:
    data = await device_registry.get(mac=mac)
    return response_base.success(data=data)


# =============================
# 设置更新标记
# =============================
@router.put(
    "/{mac}/update-flags",
    summary="设置设备更新标记",
    dependencies=[DependsServiceToken],
)
async def update_device_flags(
        mac: Annotated[str, Path(description="设备 MAC")],
        obj: UpdateFlagsParam,
) -> ResponseSchemaModel[GetDeviceDetail]:
    data = await device_registry.set_update_flags(mac=mac, obj=obj)
    return response_base.success(data=data)
