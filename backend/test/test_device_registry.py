#!/usr/bin/env python
# -*- coding: utf-8 -*-
from datetime import timedelta

import pytest

from backend.app.fleet.schema.device import PingDeviceParam, RegisterDeviceParam, UpdateFlagsParam
from backend.common.exception import errors
from backend.utils.timezone import timezone


async def test_register_creates_defaults(registry):
    detail = await registry.upsert(obj=RegisterDeviceParam(mac='AA:BB:CC:DD:EE:01'))
    assert detail.mac == 'aabbccddee01'
    assert detail.name == 'CalcAI-dee01'
    assert detail.status == 'online'
    assert detail.first_seen is not None
    assert detail.update_available is False
    assert detail.update_state == 'idle'


async def test_register_keeps_missing_fields(registry):
    first = await registry.upsert(obj=RegisterDeviceParam(mac='aa11', chip_id='c1', firmware='1.0.0'))
    second = await registry.upsert(obj=RegisterDeviceParam(mac='aa11', name='Desk'))
    assert second.chip_id == 'c1'
    assert second.firmware == '1.0.0'
    assert second.name == 'Desk'
    assert second.first_seen == first.first_seen
    assert second.last_seen >= first.last_seen


async def test_register_accepts_alias_keys(registry):
    obj = RegisterDeviceParam.model_validate({'deviceId': 'aa12', 'chipId': 'c9'})
    detail = await registry.upsert(obj=obj)
    assert detail.mac == 'aa12'
    assert detail.chip_id == 'c9'


async def test_register_rejects_bad_mac(registry):
    with pytest.raises(errors.RequestError):
        await registry.upsert(obj=RegisterDeviceParam(mac='zz-not-hex'))


async def test_ping_unknown_device(registry):
    with pytest.raises(errors.NotRegisteredError):
        await registry.ping(obj=PingDeviceParam(mac='aa11'))


async def test_ping_refreshes_status_and_signal(registry):
    await registry.upsert(obj=RegisterDeviceParam(mac='aa11', firmware='1.0.0', status='offline'))
    detail = await registry.ping(obj=PingDeviceParam.model_validate({'mac': 'aa11', 'rssi': -61}))
    assert detail.status == 'online'
    assert detail.signal == -61
    assert detail.last_update_ping_at is not None
    assert detail.last_update_status == 'updated'


async def test_update_flags_unknown_device(registry):
    with pytest.raises(errors.NotFoundError):
        await registry.set_update_flags(mac='aa11', obj=UpdateFlagsParam(update_available=True))


async def test_target_lifecycle(registry):
    await registry.upsert(obj=RegisterDeviceParam(mac='aa11', firmware='1.0.0'))

    pending = await registry.set_update_flags(
        mac='aa11', obj=UpdateFlagsParam(update_available=True, target_firmware='1.2.0')
    )
    assert pending.update_state == 'pending'
    assert pending.last_update_status == 'not_updated'

    still_pending = await registry.ping(obj=PingDeviceParam(mac='aa11', firmware='1.0.0'))
    assert still_pending.update_state == 'pending'
    assert still_pending.last_update_status == 'not_updated'

    applied = await registry.upsert(obj=RegisterDeviceParam(mac='aa11', firmware='1.2.0'))
    assert applied.update_state == 'applied'
    assert applied.update_available is False
    assert applied.last_update_status == 'updated'
    assert applied.update_status_time is not None

    stored = await registry.get(mac='aa11')
    assert stored.update_available is False
    assert stored.target_firmware == '1.2.0'

    cleared = await registry.set_update_flags(mac='aa11', obj=UpdateFlagsParam(target_firmware=''))
    assert cleared.target_firmware is None
    assert cleared.update_state == 'idle'


async def test_update_flags_leave_unset_fields(registry):
    await registry.upsert(obj=RegisterDeviceParam(mac='aa11', firmware='1.0.0'))
    await registry.set_update_flags(mac='aa11', obj=UpdateFlagsParam(target_firmware='2.0.0'))
    detail = await registry.set_update_flags(mac='aa11', obj=UpdateFlagsParam(update_available=True))
    assert detail.target_firmware == '2.0.0'
    assert detail.update_available is True


async def test_list_marks_stale_devices_offline(registry):
    await registry.upsert(obj=RegisterDeviceParam(mac='aa11'))
    await registry.upsert(obj=RegisterDeviceParam(mac='aa12'))
    await registry.gateway.update_device('aa11', {'last_seen': timezone.now() - timedelta(days=1)})

    devices = {device.mac: device for device in await registry.list()}
    assert devices['aa11'].status == 'offline'
    assert devices['aa12'].status == 'online'
    assert (await registry.get(mac='aa11')).status == 'offline'


async def test_list_reports_owner(registry):
    await registry.upsert(obj=RegisterDeviceParam(mac='aa11'))
    await registry.gateway.create_account('alice', 'hash')
    await registry.gateway.claim_owner_if_absent('aa11', 'alice')
    [device] = await registry.list()
    assert device.owner == 'alice'


async def test_record_download(registry):
    assert not await registry.record_download(mac='aa11', version='1.0.0')
    await registry.upsert(obj=RegisterDeviceParam(mac='aa11'))
    assert await registry.record_download(mac='aa11', version='1.0.0')
    detail = await registry.get(mac='aa11')
    assert detail.last_downloaded == '1.0.0'
    assert detail.last_downloaded_at is not None
