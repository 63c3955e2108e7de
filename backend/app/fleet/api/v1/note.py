# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : note.py
@Date    : 2025/12/09 14:10
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Path, Request, Response
from fastapi.responses import PlainTextResponse

from backend.app.fleet.schema.note import SaveNoteParam
from backend.app.fleet.service.note import notes_service
from backend.common.response.response_schema import ResponseModel, response_base
from backend.common.security.jwt import get_token
from backend.common.security.service_token import request_service_token

router = APIRouter()


async def notes_access(
        request: Request,
        mac: Annotated[str, Path(description="设备 MAC")],
        pair_code: Annotated[str | None, Header(alias="X-Pair-Code")] = None,
        web_token: Annotated[str | None, Header(alias="X-Web-Token")] = None,
) -> str:
    """ 笔记访问鉴权，返回规范化后的 MAC """
    return await notes_service.authorize(
        mac=mac,
        pair_code=pair_code,
        web_token=web_token,
        bearer=get_token(request),
        service_token=request_service_token(request),
    )


NotesMac = Annotated[str, Depends(notes_access)]


@router.get("/{mac}", summary="读取设备笔记", response_class=PlainTextResponse)
async def get_notes(mac: NotesMac) -> Response:
    text = await notes_service.get(mac=mac)
    if not text.strip():
        return Response(status_code=204)
    return PlainTextResponse(text)


@router.post("/{mac}", summary="写入设备笔记")
async def save_notes(mac: NotesMac, obj: SaveNoteParam) -> ResponseModel:
    length = await notes_service.save(mac=mac, obj=obj)
    return response_base.success(data={'length': length})


@router.delete("/{mac}", summary="删除设备笔记")
async def delete_notes(mac: NotesMac) -> ResponseModel:
    await notes_service.delete(mac=mac)
    return response_base.success()
