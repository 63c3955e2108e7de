#!/usr/bin/env python
# -*- coding: utf-8 -*-
from typing import Any

from starlette.background import BackgroundTask


class BaseExceptionMixin(Exception):
    """基础异常混入类"""

    code: int
    default_msg: str = 'error'

    def __init__(self, *, msg: str | None = None, data: Any = None, background: BackgroundTask | None = None):
        self.msg = msg or self.default_msg
        self.data = data
        # The original background task: https://www.starlette.io/background/
        self.background = background
        super().__init__(self.msg)


class RequestError(BaseExceptionMixin):
    """请求参数错误（BadInput）"""

    code = 400
    default_msg = 'bad_input'


class UnauthorizedError(BaseExceptionMixin):
    """缺少或无效的服务凭证"""

    code = 401
    default_msg = 'unauthorized'


class TokenError(UnauthorizedError):
    """账户 Token 无效"""

    default_msg = 'invalid_token'


class AuthorizationError(BaseExceptionMixin):
    """无权访问"""

    code = 403
    default_msg = 'forbidden'


class NotFoundError(BaseExceptionMixin):
    """资源不存在"""

    code = 404
    default_msg = 'not_found'


class NotRegisteredError(NotFoundError):
    """设备从未注册"""

    default_msg = 'not_registered'


class ConflictError(BaseExceptionMixin):
    """资源冲突"""

    code = 409
    default_msg = 'conflict'


class AlreadyClaimedError(ConflictError):
    """设备已被认领"""

    default_msg = 'already_claimed'


class ServerError(BaseExceptionMixin):
    """服务器内部错误"""

    code = 500
    default_msg = 'server_error'


class GatewayError(BaseExceptionMixin):
    """网关错误"""

    code = 502
    default_msg = 'bad_gateway'


class UpstreamUnavailableError(GatewayError):
    """固件源站不可用或超时"""

    default_msg = 'upstream_unavailable'


class StorageUnavailableError(Exception):
    """
    关系型数据库不可达

    仅在持久化网关内部使用，网关会回退到文件存储，不会暴露给调用方
    """
