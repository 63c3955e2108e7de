# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : device.py
@Date    : 2025/12/06 10:15
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from backend.app.fleet.repository.base import DeviceRecord
from backend.app.fleet.repository.gateway import PersistenceGateway, persistence_gateway
from backend.app.fleet.schema.device import (
    DeviceStatus,
    GetDeviceDetail,
    PingDeviceParam,
    RegisterDeviceParam,
    UpdateFlagsParam,
    UpdateState,
)
from backend.common.exception import errors
from backend.common.log import log
from backend.core.conf import settings
from backend.utils.identifiers import normalize_mac, sanitize_version, try_sanitize_version
from backend.utils.timezone import timezone

STATUS_UPDATED = 'updated'
STATUS_NOT_UPDATED = 'not_updated'


def same_version(reported: Optional[str], target: Optional[str]) -> bool:
    """ 设备上报的版本与目标版本（已清理）是否一致 """
    if not reported or not target:
        return False
    return reported == target or try_sanitize_version(reported) == target


def update_state(record: DeviceRecord) -> UpdateState:
    """
    推导设备的更新子状态

    idle -> pending（设置目标且未达成） -> applied（固件已等于目标） -> idle（清除目标）
    """
    target = record.get('target_firmware')
    if not target:
        return UpdateState.idle
    if same_version(record.get('firmware'), target):
        return UpdateState.applied
    if record.get('update_available'):
        return UpdateState.pending
    return UpdateState.idle


def applied_fields(record: DeviceRecord, now: datetime) -> Dict[str, Any]:
    """ 固件已达到目标版本时需要写回的字段 """
    if update_state(record) is not UpdateState.applied:
        return {}
    if not record.get('update_available') and record.get('last_update_status') == STATUS_UPDATED:
        return {}
    return {'update_available': False, 'last_update_status': STATUS_UPDATED, 'update_status_time': now}


class DeviceRegistry:
    """设备注册表"""

    def __init__(self, gateway: PersistenceGateway):
        self.gateway = gateway

    @staticmethod
    def to_detail(record: DeviceRecord, owner: Optional[str] = None) -> GetDeviceDetail:
        return GetDeviceDetail.model_validate({
            **record,
            'update_available': bool(record.get('update_available')),
            'update_state': update_state(record),
            'owner': owner,
        })

    async def upsert(self, *, obj: RegisterDeviceParam) -> GetDeviceDetail:
        """ 注册或刷新设备，未提供的字段保留原值 """
        mac = normalize_mac(obj.mac)
        now = timezone.now()
        incoming = {
            'mac': mac,
            'chip_id': obj.chip_id or None,
            'model': obj.model or None,
            'firmware': obj.firmware or None,
            'name': obj.name or None,
            'status': obj.status or DeviceStatus.online.value,
            'first_seen': obj.first_seen,
        }
        record = await self.gateway.upsert_device(incoming, now=now)
        if fields := applied_fields(record, now):
            await self.gateway.update_device(mac, fields)
            record.update(fields)
            log.info(f'[device] {mac} 已更新至目标固件 {record["target_firmware"]}')
        return self.to_detail(record, await self.gateway.get_owner(mac))

    async def ping(self, *, obj: PingDeviceParam) -> GetDeviceDetail:
        """ 心跳：刷新在线状态并重新计算更新状态 """
        mac = normalize_mac(obj.mac)
        record = await self.gateway.get_device(mac)
        if record is None:
            raise errors.NotRegisteredError()

        now = timezone.now()
        fields: Dict[str, Any] = {
            'last_seen': now,
            'status': DeviceStatus.online.value,
            'last_update_ping_at': now,
        }
        if obj.firmware:
            fields['firmware'] = obj.firmware
        if obj.signal is not None:
            fields['signal'] = obj.signal

        merged = {**record, **fields}
        if applied := applied_fields(merged, now):
            fields.update(applied)
        elif update_state(merged) is not UpdateState.applied:
            status = STATUS_NOT_UPDATED if merged.get('update_available') else STATUS_UPDATED
            fields['last_update_status'] = status
            if record.get('last_update_status') != status:
                fields['update_status_time'] = now

        await self.gateway.update_device(mac, fields)
        record.update(fields)
        return self.to_detail(record, await self.gateway.get_owner(mac))

    async def set_update_flags(self, *, mac: str, obj: UpdateFlagsParam) -> GetDeviceDetail:
        """ 管理员设置更新标记，未传的字段保持不变 """
        mac = normalize_mac(mac)
        record = await self.gateway.get_device(mac)
        if record is None:
            raise errors.NotFoundError()

        now = timezone.now()
        fields: Dict[str, Any] = {}
        if 'update_available' in obj.model_fields_set and obj.update_available is not None:
            fields['update_available'] = obj.update_available
        if 'target_firmware' in obj.model_fields_set:
            fields['target_firmware'] = sanitize_version(obj.target_firmware) if obj.target_firmware else None

        merged = {**record, **fields}
        if applied := applied_fields(merged, now):
            fields.update(applied)
        elif update_state(merged) is UpdateState.pending and record.get('last_update_status') != STATUS_NOT_UPDATED:
            fields.update(last_update_status=STATUS_NOT_UPDATED, update_status_time=now)

        if fields:
            await self.gateway.update_device(mac, fields)
            record.update(fields)
            log.info(f'[device] {mac} 更新标记: {fields}')
        return self.to_detail(record, await self.gateway.get_owner(mac))

    async def get(self, *, mac: str) -> GetDeviceDetail:
        mac = normalize_mac(mac)
        record = await self.gateway.get_device(mac)
        if record is None:
            raise errors.NotFoundError()
        return self.to_detail(record, await self.gateway.get_owner(mac))

    async def get_record(self, mac: str) -> Optional[DeviceRecord]:
        return await self.gateway.get_device(mac)

    async def list(self) -> List[GetDeviceDetail]:
        """ 获取全部设备，超过阈值未上线的设备标记为离线并写回 """
        records = await self.gateway.list_devices(settings.DEVICE_LIST_LIMIT)
        owners = await self.gateway.list_owners()
        threshold = timezone.now() - timedelta(seconds=settings.DEVICE_STALE_SECONDS)
        for record in records:
            last_seen = record.get('last_seen')
            if record.get('status') == DeviceStatus.offline.value:
                continue
            if last_seen is None or last_seen < threshold:
                record['status'] = DeviceStatus.offline.value
                await self.gateway.update_device(record['mac'], {'status': DeviceStatus.offline.value})
        return [self.to_detail(record, owners.get(record['mac'])) for record in records]

    async def record_download(self, *, mac: str, version: str) -> bool:
        """ 记录设备下载的固件版本，未知设备忽略 """
        if await self.gateway.get_device(mac) is None:
            return False
        return await self.gateway.update_device(
            mac, {'last_downloaded': version, 'last_downloaded_at': timezone.now()}
        )


device_registry: DeviceRegistry = DeviceRegistry(persistence_gateway)
