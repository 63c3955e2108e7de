# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : router.py
@Date    : 2025/12/09 10:00
"""
from fastapi import APIRouter

from backend.app.fleet.api.v1 import router as fleet_router
from backend.core.conf import settings

v1 = APIRouter(prefix=settings.FASTAPI_API_PATH)

v1.include_router(fleet_router)
