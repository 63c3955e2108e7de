#!/usr/bin/env python
# -*- coding: utf-8 -*-
import httpx
import pytest

from backend.app.fleet.schema.device import PingDeviceParam, RegisterDeviceParam, UpdateFlagsParam
from backend.app.fleet.service.firmware import FirmwareStore
from backend.app.fleet.service.ota import OTACoordinator
from backend.common.cache import DigestCache

BASE_URL = 'http://fleet.test'


async def register(registry, mac: str, firmware: str) -> None:
    await registry.upsert(obj=RegisterDeviceParam(mac=mac, firmware=firmware))


async def test_targeted_update_lifecycle(registry, firmware, ota):
    await firmware.publish(version='1.2.0', data=b'target-image')
    await register(registry, 'aa11', '1.0.0')
    await registry.set_update_flags(mac='aa11', obj=UpdateFlagsParam(update_available=True, target_firmware='1.2.0'))

    offer = await ota.check_update(mac='aa11', current_version='1.0.0', base_url=BASE_URL)
    assert offer.update_available
    assert offer.version == '1.2.0'
    assert offer.download_url == f'{BASE_URL}/api/ota/firmware/1.2.0?device=aa11'
    assert offer.size == len(b'target-image')
    assert offer.sha256

    # 设备刷入目标固件后重新注册
    await register(registry, 'aa11', '1.2.0')
    detail = await registry.get(mac='aa11')
    assert detail.update_available is False
    assert detail.last_update_status == 'updated'

    result = await ota.check_update(mac='aa11', current_version='1.2.0', base_url=BASE_URL)
    assert not result.update_available


async def test_applied_target_ignores_fleet_latest(registry, firmware, ota):
    await firmware.publish(version='1.2.0', data=b'target-image')
    await register(registry, 'aa11', '1.0.0')
    await registry.set_update_flags(mac='aa11', obj=UpdateFlagsParam(update_available=True, target_firmware='1.2.0'))
    await register(registry, 'aa11', '1.2.0')
    await firmware.publish(version='1.3.0', data=b'newer-image')

    result = await ota.check_update(mac='aa11', current_version='1.2.0', base_url=BASE_URL)
    assert not result.update_available


async def test_pending_target_without_artifact(registry, ota):
    await register(registry, 'aa11', '1.0.0')
    await registry.set_update_flags(mac='aa11', obj=UpdateFlagsParam(update_available=True, target_firmware='1.2.0'))
    result = await ota.check_update(mac='aa11', current_version='1.0.0', base_url=BASE_URL)
    assert not result.update_available


@pytest.mark.parametrize(
    ('current', 'expected'),
    [('1.0.0', '1.1.0'), ('1.1.0', None), ('', None), (None, None)],
)
async def test_fleet_latest(registry, firmware, ota, current, expected):
    await firmware.publish(version='1.0.0', data=b'old')
    await firmware.publish(version='1.1.0', data=b'new')
    result = await ota.check_update(mac='aa11', current_version=current, base_url=BASE_URL)
    assert result.version == expected
    assert result.update_available is (expected is not None)


async def test_public_base_url(registry, firmware, ota, monkeypatch):
    from backend.core.conf import settings

    monkeypatch.setattr(settings, 'PUBLIC_BASE_URL', 'https://ota.example.com/')
    await firmware.publish(version='1.1.0', data=b'new')
    result = await ota.check_update(mac='aa11', current_version='1.0.0', base_url=BASE_URL)
    assert result.download_url == 'https://ota.example.com/api/ota/firmware/1.1.0?device=aa11'


@pytest.mark.parametrize(('status', 'available'), [(200, True), (404, False)])
async def test_target_gated_by_origin_probe(registry, tmp_path, make_origin, status, available):
    origin = make_origin(lambda request: httpx.Response(status))
    store = FirmwareStore(tmp_path / 'fw', origin, DigestCache())
    ota = OTACoordinator(registry, store)
    await register(registry, 'aa11', '1.0.0')
    await registry.set_update_flags(mac='aa11', obj=UpdateFlagsParam(update_available=True, target_firmware='2.0.0'))

    result = await ota.check_update(mac='aa11', current_version='1.0.0', base_url=BASE_URL)
    assert result.update_available is available
    if available:
        assert result.version == '2.0.0'
        assert result.sha256 is None
    await store.close()


async def test_publish_after_target_and_ping_convergence(registry, firmware, ota):
    await register(registry, 'aa11bb22cc33', '1.0.0')
    await registry.set_update_flags(
        mac='aa11bb22cc33', obj=UpdateFlagsParam(update_available=True, target_firmware='1.1.0')
    )
    result = await ota.check_update(mac='aa11bb22cc33', current_version='1.0.0', base_url=BASE_URL)
    assert not result.update_available

    published = await firmware.publish(version='1.1.0', data=b'image-1.1.0')
    result = await ota.check_update(mac='aa11bb22cc33', current_version='1.0.0', base_url=BASE_URL)
    assert result.update_available
    assert result.sha256 == published.sha256

    await registry.ping(obj=PingDeviceParam(mac='aa11bb22cc33', firmware='1.1.0'))
    result = await ota.check_update(mac='aa11bb22cc33', current_version='1.1.0', base_url=BASE_URL)
    assert not result.update_available
    assert (await registry.get(mac='aa11bb22cc33')).last_update_status == 'updated'


async def test_origin_cached_firmware_is_not_offered_fleet_wide(registry, tmp_path, make_origin):
    origin = make_origin(lambda request: httpx.Response(200, content=b'origin-image'))
    store = FirmwareStore(tmp_path / 'fw', origin, DigestCache())
    ota = OTACoordinator(registry, store)
    await store.fetch(version='9.9.9-beta')
    await register(registry, 'bb22', '1.0.0')

    result = await ota.check_update(mac='bb22', current_version='1.0.0', base_url=BASE_URL)
    assert not result.update_available
    assert await store.latest() is None
    await store.close()
