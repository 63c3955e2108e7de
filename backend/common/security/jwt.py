from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPBearer
from fastapi.security.http import HTTPAuthorizationCredentials
from fastapi.security.utils import get_authorization_scheme_param
from jose import ExpiredSignatureError, JWTError, jwt

from backend.common.exception import errors
from backend.core.conf import settings
from backend.utils.timezone import timezone


@dataclass
class TokenPayload:
    username: str
    macs: list[str]
    expire_time: datetime


# JWT dependency injection
DependsJwtAuth = Depends(HTTPBearer(auto_error=False))


def jwt_encode(payload: dict[str, Any]) -> str:
    """
    生成 JWT token

    :param payload: 载荷
    :return:
    """
    return jwt.encode(payload, settings.TOKEN_SECRET_KEY, settings.TOKEN_ALGORITHM)


def jwt_decode(token: str) -> TokenPayload:
    """
    解析 JWT token

    :param token: JWT token
    :return:
    """
    try:
        payload = jwt.decode(
            token,
            settings.TOKEN_SECRET_KEY,
            algorithms=[settings.TOKEN_ALGORITHM],
            options={'verify_exp': True},
        )
    except ExpiredSignatureError:
        raise errors.TokenError(msg='token_expired')
    except JWTError:
        raise errors.TokenError()
    username = payload.get('sub')
    expire = payload.get('exp')
    macs = payload.get('macs') or []
    if not username or not expire or not isinstance(macs, list):
        raise errors.TokenError()
    return TokenPayload(
        username=username,
        macs=[str(mac) for mac in macs],
        expire_time=timezone.from_datetime(timezone.to_utc(int(expire))),
    )


def create_access_token(username: str, macs: list[str]) -> str:
    """
    生成账户 token

    :param username: 用户名
    :param macs: 账户名下的设备
    :return:
    """
    expire = timezone.now() + timedelta(seconds=settings.TOKEN_EXPIRE_SECONDS)
    return jwt_encode({
        'sub': username,
        'macs': macs,
        'exp': int(timezone.to_utc(expire).timestamp()),
    })


def get_token(request: Request) -> str | None:
    """
    获取请求头中的 Bearer token

    :param request: FastAPI 请求对象
    :return:
    """
    authorization = request.headers.get('Authorization')
    scheme, token = get_authorization_scheme_param(authorization)
    if not authorization or scheme.lower() != 'bearer':
        return None
    return token


def jwt_authentication(credentials: HTTPAuthorizationCredentials | None = DependsJwtAuth) -> TokenPayload:
    """ 必须携带有效账户 token """
    if credentials is None:
        raise errors.TokenError(msg='missing_token')
    return jwt_decode(credentials.credentials)


# 账户鉴权依赖注入
DependsAccount = Depends(jwt_authentication)
