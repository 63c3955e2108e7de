# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : __init__.py
@Date    : 2025/12/09 10:00
"""
from fastapi import APIRouter

from backend.app.fleet.api.v1.admin import router as admin_router
from backend.app.fleet.api.v1.auth import router as auth_router
from backend.app.fleet.api.v1.device import router as device_router
from backend.app.fleet.api.v1.note import router as note_router
from backend.app.fleet.api.v1.ota import router as ota_router
from backend.app.fleet.api.v1.pair import router as pair_router

router = APIRouter()

router.include_router(device_router, prefix='/devices', tags=['设备'])
router.include_router(pair_router, prefix='/pair', tags=['配对'])
router.include_router(ota_router, prefix='/ota', tags=['OTA'])
router.include_router(note_router, prefix='/notes', tags=['笔记'])
router.include_router(auth_router, prefix='/auth', tags=['账户'])
router.include_router(admin_router, prefix='/admin', tags=['管理'])
