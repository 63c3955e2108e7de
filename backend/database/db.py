#!/usr/bin/env python
# -*- coding: utf-8 -*-
import asyncio

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from enum import Enum

import sqlalchemy as sa

from sqlalchemy import URL, make_url
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from backend.common.exception import errors
from backend.common.log import log
from backend.common.model import MappedBase
from backend.core.conf import settings


class ConnectionState(str, Enum):
    """关系型数据库连接状态"""

    DISABLED = 'disabled'
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    READY = 'ready'


def mask_url(url: str | URL) -> str:
    """ 隐藏连接串中的密码 """
    try:
        return make_url(url).render_as_string(hide_password=True)
    except (sa.exc.ArgumentError, ValueError):
        return '<invalid database url>'


def evolve_schema(conn: sa.Connection) -> list[str]:
    """
    增量式、幂等的表结构演进

    先创建缺失的表，再为已存在的表补齐缺失的列（一律以可空列添加），可在每次启动时安全执行

    :param conn: 同步连接
    :return: 新增的列
    """
    MappedBase.metadata.create_all(conn, checkfirst=True)
    inspector = sa.inspect(conn)
    added = []
    for table in MappedBase.metadata.sorted_tables:
        existing = {column['name'] for column in inspector.get_columns(table.name)}
        for column in table.columns:
            if column.name in existing:
                continue
            column_type = column.type.compile(dialect=conn.dialect)
            conn.execute(sa.text(f'ALTER TABLE {table.name} ADD COLUMN {column.name} {column_type}'))
            added.append(f'{table.name}.{column.name}')
    return added


def dialect_insert(db: AsyncSession, table: sa.Table):
    """
    获取支持 ON CONFLICT 的 insert 语句

    :param db: 数据库会话
    :param table: 表
    :return:
    """
    dialect = db.bind.dialect.name
    if dialect == 'postgresql':
        return postgresql.insert(table)
    if dialect == 'sqlite':
        return sqlite.insert(table)
    raise errors.ServerError(msg=f'unsupported_dialect:{dialect}')


class RelationalStore:
    """
    可选的关系型数据库

    未配置连接串时始终不可用；配置后在每次调用且尚无可用连接时尝试（重新）连接，
    失败只记录日志，不会永久禁用，下一次调用会再次尝试
    """

    def __init__(self, url: str | None, *, connect_timeout: float = 5.0, echo: bool = False, pool_size: int = 5):
        self.url = url
        self.connect_timeout = connect_timeout
        self.echo = echo
        self.pool_size = pool_size

        self.state = ConnectionState.DISCONNECTED if url else ConnectionState.DISABLED
        self._engine: AsyncEngine | None = None
        self._session_maker: async_sessionmaker[AsyncSession] | None = None
        self._lock = asyncio.Lock()
        self._attempts = 0

    @property
    def enabled(self) -> bool:
        return self.state is not ConnectionState.DISABLED

    @property
    def ready(self) -> bool:
        return self.state is ConnectionState.READY

    def _create_engine(self) -> AsyncEngine:
        options = {'echo': self.echo, 'future': True, 'pool_pre_ping': True}
        if make_url(self.url).get_backend_name() != 'sqlite':
            options.update(pool_size=self.pool_size, max_overflow=self.pool_size * 2, pool_recycle=3600)
        return create_async_engine(self.url, **options)

    async def ensure_ready(self) -> bool:
        """
        确保存在可用连接

        :return: 关系型数据库是否可用
        """
        if self.state is ConnectionState.READY:
            return True
        if self.state is ConnectionState.DISABLED:
            return False

        attempt = self._attempts
        async with self._lock:
            if self.state is ConnectionState.READY:
                return True
            if self._attempts != attempt:
                # 等待期间已有一次尝试失败，共享其结果
                return False
            self.state = ConnectionState.CONNECTING
            engine = None
            try:
                engine = self._create_engine()
                async with asyncio.timeout(self.connect_timeout):
                    async with engine.begin() as conn:
                        added = await conn.run_sync(evolve_schema)
            except (OSError, TimeoutError, ImportError, SQLAlchemyError) as e:
                log.warning(f'[db] 连接 {mask_url(self.url)} 失败，下次请求将重试: {e!r}')
                if engine is not None:
                    await engine.dispose()
                self.state = ConnectionState.DISCONNECTED
                self._attempts += 1
                return False

            if added:
                log.info(f'[db] 新增列: {", ".join(added)}')
            self._engine = engine
            self._session_maker = async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)
            self.state = ConnectionState.READY
            log.info(f'[db] 已连接 {mask_url(self.url)}')
            return True

    async def _mark_lost(self, e: Exception) -> None:
        log.warning(f'[db] 连接已断开，回退至文件存储: {e!r}')
        self.state = ConnectionState.DISCONNECTED
        engine, self._engine, self._session_maker = self._engine, None, None
        if engine is not None:
            await engine.dispose()

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """
        开启事务会话

        连接丢失时标记为断开并抛出 StorageUnavailableError；其余数据库错误作为通用存储失败抛出
        """
        if self._session_maker is None:
            raise errors.StorageUnavailableError('relational store is not connected')
        try:
            async with self._session_maker.begin() as db:
                yield db
        except OSError as e:
            await self._mark_lost(e)
            raise errors.StorageUnavailableError(str(e)) from e
        except DBAPIError as e:
            if e.connection_invalidated or isinstance(e.orig, OSError):
                await self._mark_lost(e)
                raise errors.StorageUnavailableError(str(e)) from e
            log.error(f'[db] 数据库操作失败: {e!r}')
            raise errors.ServerError(msg='storage_error') from e
        except SQLAlchemyError as e:
            log.error(f'[db] 数据库操作失败: {e!r}')
            raise errors.ServerError(msg='storage_error') from e

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine, self._session_maker = None, None
        if self.state is not ConnectionState.DISABLED:
            self.state = ConnectionState.DISCONNECTED


relational_store = RelationalStore(
    settings.DATABASE_URL,
    connect_timeout=settings.DATABASE_CONNECT_TIMEOUT,
    echo=settings.DATABASE_ECHO,
    pool_size=settings.DATABASE_POOL_SIZE,
)
