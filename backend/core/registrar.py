#!/usr/bin/env python
# -*- coding: utf-8 -*-
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.fleet.repository.gateway import persistence_gateway
from backend.app.fleet.service.firmware import firmware_store
from backend.app.router import router
from backend.common.exception.exception_handler import register_exception
from backend.common.log import log, set_custom_logfile, setup_logging
from backend.core.conf import settings


@asynccontextmanager
async def register_init(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    启动初始化

    :param app: FastAPI 应用实例
    :return:
    """
    # 尝试连接数据库，失败时使用文件存储，后续请求会自动重试
    await persistence_gateway.startup()
    log.info(f'[app] 存储状态: {persistence_gateway.state.value}')

    yield

    await firmware_store.close()
    await persistence_gateway.shutdown()


def register_app() -> FastAPI:
    """注册 FastAPI 应用"""
    app = FastAPI(
        title=settings.FASTAPI_TITLE,
        version=settings.FASTAPI_VERSION,
        description=settings.FASTAPI_DESCRIPTION,
        docs_url=settings.FASTAPI_DOCS_URL,
        openapi_url=settings.FASTAPI_OPENAPI_URL,
        lifespan=register_init,
    )

    register_logger()
    register_middleware(app)
    register_router(app)
    register_exception(app)

    return app


def register_logger() -> None:
    """注册日志"""
    setup_logging()
    if settings.LOG_FILE_ENABLED:
        set_custom_logfile()


def register_middleware(app: FastAPI) -> None:
    """
    注册中间件

    :param app: FastAPI 应用实例
    :return:
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOWED_ORIGINS,
        allow_credentials=False,
        allow_methods=['*'],
        allow_headers=['*'],
        expose_headers=settings.CORS_EXPOSE_HEADERS,
    )


def register_router(app: FastAPI) -> None:
    """
    注册路由

    :param app: FastAPI 应用实例
    :return:
    """
    app.include_router(router)
