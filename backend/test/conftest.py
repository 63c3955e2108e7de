#!/usr/bin/env python
# -*- coding: utf-8 -*-
import os
import shutil
import tempfile

# 必须在导入 backend 之前设置，配置在导入时读取
STORE_DIR = tempfile.mkdtemp(prefix='calcfleet-test-')
os.environ['STORE_DIR'] = STORE_DIR
os.environ['TOKEN_SECRET_KEY'] = 'test-secret'
for _name in (
    'DATABASE_URL',
    'DEVICES_SERVICE_TOKEN',
    'DASHBOARD_SERVICE_TOKEN',
    'SERVICE_TOKEN',
    'FIRMWARE_ORIGIN_URL',
    'MANAGEMENT_DASHBOARD_BASE',
    'FIRMWARE_ORIGIN_TOKEN',
    'PUBLIC_BASE_URL',
):
    os.environ.pop(_name, None)

from pathlib import Path  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from backend.app.fleet.repository.gateway import PersistenceGateway, create_gateway  # noqa: E402
from backend.app.fleet.service.device import DeviceRegistry  # noqa: E402
from backend.app.fleet.service.firmware import FirmwareOrigin, FirmwareStore  # noqa: E402
from backend.app.fleet.service.ota import OTACoordinator  # noqa: E402
from backend.app.fleet.service.pair import PairingService  # noqa: E402
from backend.common.cache import DigestCache, SessionTokenCache  # noqa: E402
from backend.database.db import RelationalStore  # noqa: E402


def sqlite_url(path: Path) -> str:
    return f'sqlite+aiosqlite:///{path}'


@pytest.fixture
def file_gateway(tmp_path) -> PersistenceGateway:
    """未配置数据库，只使用文件存储"""
    return create_gateway(RelationalStore(None), tmp_path / 'store')


@pytest.fixture
async def sql_gateway(tmp_path):
    """SQLite 数据库 + 文件存储"""
    store = RelationalStore(sqlite_url(tmp_path / 'fleet.db'))
    gateway = create_gateway(store, tmp_path / 'store')
    yield gateway
    await store.close()


@pytest.fixture(params=['file', 'sql'])
async def gateway(request, tmp_path):
    """分别在两种后端上运行"""
    if request.param == 'file':
        yield create_gateway(RelationalStore(None), tmp_path / 'store')
        return
    store = RelationalStore(sqlite_url(tmp_path / 'fleet.db'))
    yield create_gateway(store, tmp_path / 'store')
    await store.close()


@pytest.fixture
def registry(gateway) -> DeviceRegistry:
    return DeviceRegistry(gateway)


@pytest.fixture
def pairing(gateway) -> PairingService:
    return PairingService(gateway, SessionTokenCache(ttl=60))


@pytest.fixture
def firmware(tmp_path) -> FirmwareStore:
    return FirmwareStore(tmp_path / 'firmware', FirmwareOrigin(None), DigestCache())


@pytest.fixture
def ota(registry, firmware) -> OTACoordinator:
    return OTACoordinator(registry, firmware)


@pytest.fixture
def make_origin():
    """使用 MockTransport 的固件源站"""

    def factory(handler, **kwargs) -> FirmwareOrigin:
        return FirmwareOrigin("http://origin.test", transport=httpx.MockTransport(handler), **kwargs)

    return factory


@pytest.fixture
def clean_store():
    """清空全局单例使用的存储目录"""
    from backend.app.fleet.service.firmware import firmware_store
    from backend.app.fleet.service.pair import pairing_service

    def wipe():
        for child in Path(STORE_DIR).iterdir():
            if child.is_dir():
                shutil.rmtree(child, ignore_errors=True)
            else:
                child.unlink(missing_ok=True)
        firmware_store.digests.clear()
        pairing_service.web_tokens.clear()

    wipe()
    yield Path(STORE_DIR)
    wipe()
