#!/usr/bin/env python
# -*- coding: utf-8 -*-
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse

from backend.common.exception.errors import BaseExceptionMixin
from backend.common.log import log
from backend.common.response.response_code import CustomResponseCode


def _validation_errors(exc: RequestValidationError) -> list[dict]:
    """ 精简参数校验错误信息 """
    return [
        {'loc': list(error.get('loc', ())), 'type': error.get('type'), 'msg': error.get('msg')}
        for error in exc.errors()
    ]


def register_exception(app: FastAPI) -> None:
    """
    注册全局异常处理器

    :param app: FastAPI 应用实例
    :return:
    """

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """全局 HTTP 异常处理"""
        return JSONResponse(
            status_code=exc.status_code,
            content={'code': exc.status_code, 'msg': exc.detail, 'data': None},
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """请求参数校验异常处理"""
        return JSONResponse(
            status_code=400,
            content={'code': 400, 'msg': CustomResponseCode.HTTP_400.msg, 'data': _validation_errors(exc)},
        )

    @app.exception_handler(BaseExceptionMixin)
    async def custom_exception_handler(request: Request, exc: BaseExceptionMixin):
        """业务异常处理"""
        if exc.code >= 500:
            log.error(f'{request.method} {request.url.path} -> {exc.code} {exc.msg}')
        return JSONResponse(
            status_code=exc.code,
            content={'code': exc.code, 'msg': exc.msg, 'data': exc.data},
            background=exc.background,
        )

    @app.exception_handler(Exception)
    async def all_unknown_exception_handler(request: Request, exc: Exception):
        """未知异常处理"""
        log.exception(f'未知异常: {request.method} {request.url.path}: {exc!r}')
        return JSONResponse(
            status_code=500,
            content={'code': 500, 'msg': CustomResponseCode.HTTP_500.msg, 'data': None},
        )
