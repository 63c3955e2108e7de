# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : ota.py
@Date    : 2025/12/09 11:20
"""
from typing import Annotated

from fastapi import APIRouter, Path, Query, Request, Response
from fastapi.responses import FileResponse

from backend.app.fleet.schema.firmware import GetCheckUpdateDetail, GetFirmwareDetail, UploadFirmwareParam
from backend.app.fleet.service.device import device_registry
from backend.app.fleet.service.firmware import FirmwareArtifact, firmware_store
from backend.app.fleet.service.ota import ota_coordinator
from backend.common.exception import errors
from backend.common.log import log
from backend.common.response.response_schema import ResponseModel, ResponseSchemaModel, response_base
from backend.common.security.service_token import DependsDeviceToken, DependsServiceToken
from backend.core.conf import settings
from backend.utils.identifiers import normalize_mac

router = APIRouter()


def etag_matches(if_none_match: str | None, etag: str) -> bool:
    """ 解析 If-None-Match，兼容弱校验与通配符 """
    if not if_none_match:
        return False
    for candidate in if_none_match.split(','):
        candidate = candidate.strip()
        if candidate.startswith('W/'):
            candidate = candidate[2:]
        if candidate in ('*', etag):
            return True
    return False


def firmware_headers(artifact: FirmwareArtifact) -> dict[str, str]:
    return {
        'ETag': artifact.etag,
        'Cache-Control': settings.FIRMWARE_CACHE_CONTROL,
        'X-Firmware-Sha256': artifact.sha256,
    }


# =============================
# 检查更新
# =============================
@router.get(
    "/check-update/{device_id}",
    summary="检查设备是否需要更新",
    dependencies=[DependsDeviceToken],
)
async def check_update(
        request: Request,
        device_id: Annotated[str, Path(description="设备 MAC")],
        current_version: Annotated[str | None, Query(alias="currentVersion", description="当前固件版本")] = None,
) -> ResponseSchemaModel[GetCheckUpdateDetail]:
    data = await ota_coordinator.check_update(
        mac=device_id,
        current_version=current_version,
        base_url=str(request.base_url),
    )
    return response_base.success(data=data)


# =============================
# 上传固件
# =============================
@router.post(
    "/firmware/upload",
    summary="发布固件",
    dependencies=[DependsServiceToken],
)
async def upload_firmware(obj: UploadFirmwareParam) -> ResponseSchemaModel[GetFirmwareDetail]:
    data = await firmware_store.publish(version=obj.version, data=obj.data, description=obj.description)
    return response_base.success(data=data)


# =============================
# 固件列表
# =============================
@router.get(
    "/firmware/list",
    summary="获取固件版本列表（最新在前）",
)
async def get_firmware_list() -> ResponseSchemaModel[list[GetFirmwareDetail]]:
    data = await firmware_store.list()
    return response_base.success(data=data)


# =============================
# 最新固件
# =============================
@router.get(
    "/firmware/latest",
    summary="获取最新固件",
)
async def get_latest_firmware() -> ResponseSchemaModel[GetFirmwareDetail | None]:
    data = await firmware_store.latest()
    return response_base.success(data=data)


# =============================
# 清空固件
# =============================
@router.delete(
    "/firmware/clear-all",
    summary="清空全部固件",
    dependencies=[DependsServiceToken],
)
async def clear_all_firmware() -> ResponseModel:
    count = await firmware_store.clear_all()
    return response_base.success(data={'deleted': count})


# =============================
# 下载 / 探测固件
# =============================
@router.api_route(
    "/firmware/{version}",
    methods=["GET", "HEAD"],
    summary="下载固件",
    dependencies=[DependsDeviceToken],
    response_class=FileResponse,
)
async def get_firmware(
        request: Request,
        version: Annotated[str, Path(description="固件版本")],
        device: Annotated[str | None, Query(description="下载设备 MAC")] = None,
) -> Response:
    artifact = await firmware_store.fetch(version=version)
    headers = firmware_headers(artifact)
    if etag_matches(request.headers.get('If-None-Match'), artifact.etag):
        return Response(status_code=304, headers=headers)
    if device and request.method == 'GET':
        try:
            await device_registry.record_download(mac=normalize_mac(device), version=artifact.version)
        except errors.RequestError:
            log.warning(f'[ota] 忽略无效的下载设备参数: {device!r}')
    return FileResponse(
        artifact.path,
        media_type='application/octet-stream',
        filename=f'{artifact.version}.bin',
        headers=headers,
    )


# =============================
# 删除固件
# =============================
@router.delete(
    "/firmware/{version}",
    summary="删除固件",
    dependencies=[DependsServiceToken],
)
async def delete_firmware(version: Annotated[str, Path(description="固件版本")]) -> ResponseModel:
    await firmware_store.delete(version=version)
    return response_base.success()
