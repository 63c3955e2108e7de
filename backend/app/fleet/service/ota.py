# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : ota.py
@Date    : 2025/12/08 16:45
"""
from typing import Optional
from urllib.parse import quote

from backend.app.fleet.schema.device import UpdateState
from backend.app.fleet.schema.firmware import GetCheckUpdateDetail
from backend.app.fleet.service.device import DeviceRegistry, device_registry, same_version, update_state
from backend.app.fleet.service.firmware import FirmwareStore, firmware_store
from backend.common.log import log
from backend.core.conf import settings
from backend.utils.identifiers import normalize_mac

NO_UPDATE = GetCheckUpdateDetail(update_available=False)


class OTACoordinator:
    """
    OTA 更新决策

    只有确认固件可获取（本地已缓存或源站探测成功）时才会提示更新
    """

    def __init__(self, registry: DeviceRegistry, firmware: FirmwareStore):
        self.registry = registry
        self.firmware = firmware

    @staticmethod
    def download_url(base_url: str, version: str, mac: str) -> str:
        base = (settings.PUBLIC_BASE_URL or base_url).rstrip('/')
        return f'{base}{settings.FASTAPI_API_PATH}/ota/firmware/{quote(version, safe="")}?device={mac}'

    async def _offer(self, version: str, mac: str, base_url: str) -> GetCheckUpdateDetail:
        artifact = await self.firmware.describe(version)
        return GetCheckUpdateDetail(
            update_available=True,
            version=version,
            download_url=self.download_url(base_url, version, mac),
            sha256=artifact.sha256 if artifact else None,
            size=artifact.size if artifact else None,
        )

    async def check_update(self, *, mac: str, current_version: Optional[str], base_url: str) -> GetCheckUpdateDetail:
        """
        检查设备是否需要更新

        1. 设备有待应用的目标版本：当前版本已是目标则不提示；目标固件不可获取也不提示
        2. 没有待应用的目标：提示全局最新版本（需与当前版本不同且本地已缓存）

        :param mac: 设备 MAC
        :param current_version: 设备当前固件版本
        :param base_url: 请求的基础地址，未配置 PUBLIC_BASE_URL 时用于生成下载地址
        :return:
        """
        mac = normalize_mac(mac)
        current = (current_version or '').strip() or None
        record = await self.registry.get_record(mac)

        if record is not None and update_state(record) is UpdateState.pending:
            target = record['target_firmware']
            if same_version(current, target):
                return NO_UPDATE
            if not await self.firmware.is_available(target):
                log.info(f'[ota] 设备 {mac} 的目标固件 {target} 暂不可获取')
                return NO_UPDATE
            return await self._offer(target, mac, base_url)

        # 已达成显式目标的设备不再跟随全局最新版本
        if record is not None and update_state(record) is UpdateState.applied:
            if same_version(current, record['target_firmware']):
                return NO_UPDATE

        latest = await self.firmware.latest()
        if latest is None or not current or same_version(current, latest.version):
            return NO_UPDATE
        if self.firmware.local_path(latest.version) is None:
            return NO_UPDATE
        return await self._offer(latest.version, mac, base_url)


ota_coordinator: OTACoordinator = OTACoordinator(device_registry, firmware_store)
