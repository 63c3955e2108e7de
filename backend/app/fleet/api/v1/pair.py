# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : pair.py
@Date    : 2025/12/09 10:30
"""
from typing import Annotated

from fastapi import APIRouter, Path, Query
from fastapi.responses import PlainTextResponse

from backend.app.fleet.schema.pair import (
    ClaimPairParam,
    GetPairClaimDetail,
    GetPairResetDetail,
    GetPairResolveDetail,
    StartPairParam,
)
from backend.app.fleet.service.pair import pairing_service
from backend.common.exception import errors
from backend.common.response.response_schema import ResponseSchemaModel, response_base
from backend.common.security.service_token import DependsServiceToken

router = APIRouter()


# =============================
# 设备获取配对码（纯文本）
# =============================
@router.get(
    "/start",
    summary="设备获取配对码",
    response_class=PlainTextResponse,
)
async def start_pair(mac: Annotated[str, Query(description="设备 MAC")]) -> PlainTextResponse:
    code = await pairing_service.issue(mac=mac)
    return PlainTextResponse(code)


@router.post(
    "/start",
    summary="设备获取配对码（POST）",
    response_class=PlainTextResponse,
)
async def start_pair_post(
        mac: Annotated[str | None, Query(description="设备 MAC")] = None,
        obj: StartPairParam | None = None,
) -> PlainTextResponse:
    mac = mac or (obj.mac if obj else None)
    if not mac:
        raise errors.RequestError(msg='bad_mac')
    code = await pairing_service.issue(mac=mac)
    return PlainTextResponse(code)


# =============================
# 解析配对码
# =============================
@router.get(
    "/resolve",
    summary="解析配对码",
)
async def resolve_pair(code: Annotated[str, Query(description="配对码")]) -> ResponseSchemaModel[GetPairResolveDetail]:
    data = await pairing_service.resolve_detail(code=code)
    return response_base.success(data=data)


# =============================
# 浏览器认领（兼容）
# =============================
@router.post(
    "/claim",
    summary="浏览器凭配对码获取会话 token",
)
async def claim_pair(obj: ClaimPairParam) -> ResponseSchemaModel[GetPairClaimDetail]:
    data = await pairing_service.issue_web_token(code=obj.code)
    return response_base.success(data=data)


# =============================
# 重置配对
# =============================
@router.post(
    "/reset/{mac}",
    summary="重置设备配对",
    dependencies=[DependsServiceToken],
)
async def reset_pair(mac: Annotated[str, Path(description="设备 MAC")]) -> ResponseSchemaModel[GetPairResetDetail]:
    data = await pairing_service.rotate(mac=mac)
    return response_base.success(data=data)
