# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : service_token.py
@Date    : 2025/12/04 17:02
"""
import hmac

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from backend.common.exception import errors
from backend.core.conf import settings

service_token_header = APIKeyHeader(name=settings.SERVICE_TOKEN_HEADER, auto_error=False)


def token_matches(token: str | None, accepted: list[str]) -> bool:
    """
    校验服务凭证

    :param token: 请求携带的凭证
    :param accepted: 可接受的凭证，为空时不做校验
    :return:
    """
    if not accepted:
        return True
    if not token:
        return False
    return any(hmac.compare_digest(token.encode(), value.encode()) for value in accepted)


def request_service_token(request: Request) -> str | None:
    """ 请求头或 ?token= 中的服务凭证 """
    return request.headers.get(settings.SERVICE_TOKEN_HEADER) or request.query_params.get('token')


def admin_token_verify(token: str | None = Depends(service_token_header)) -> None:
    if not token_matches(token, settings.admin_tokens):
        raise errors.UnauthorizedError()


def device_token_verify(token: str | None = Depends(service_token_header)) -> None:
    if not token_matches(token, settings.device_tokens):
        raise errors.UnauthorizedError()


# 管理接口鉴权依赖注入
DependsServiceToken = Depends(admin_token_verify)

# 设备接口鉴权依赖注入
DependsDeviceToken = Depends(device_token_verify)
