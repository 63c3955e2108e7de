from fastapi import APIRouter

from backend.app.fleet.api.router import v1 as fleet_v1
from backend.app.fleet.repository.gateway import persistence_gateway
from backend.core.conf import settings

router = APIRouter()

router.include_router(fleet_v1)


@router.get(f"{settings.FASTAPI_API_PATH}/health")
async def health_check():
    """健康检查端点"""
    return {"status": "ok", "database": persistence_gateway.state.value}
