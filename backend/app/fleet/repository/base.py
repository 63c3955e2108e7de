# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : base.py
@Date    : 2025/12/02 09:24
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from backend.core.conf import settings

DeviceRecord = Dict[str, Any]

# 设备持久化字段，主键在前
DEVICE_FIELDS = (
    'mac',
    'chip_id',
    'model',
    'firmware',
    'name',
    'status',
    'signal',
    'first_seen',
    'last_seen',
    'update_available',
    'target_firmware',
    'last_update_status',
    'last_update_ping_at',
    'update_status_time',
    'last_downloaded',
    'last_downloaded_at',
)

DEVICE_TIME_FIELDS = frozenset({
    'first_seen',
    'last_seen',
    'last_update_ping_at',
    'update_status_time',
    'last_downloaded_at',
})

# upsert 时可覆盖的字段；传入 None 保留原值
MERGE_FIELDS = ('chip_id', 'model', 'firmware', 'name', 'status', 'signal')


def default_name(mac: str) -> str:
    return f'{settings.DEVICE_NAME_PREFIX}-{mac[-5:]}'


def new_device(mac: str, now: datetime) -> DeviceRecord:
    """ 首次注册时创建的记录 """
    record: DeviceRecord = dict.fromkeys(DEVICE_FIELDS)
    record.update(
        mac=mac,
        model=settings.DEVICE_DEFAULT_MODEL,
        name=default_name(mac),
        first_seen=now,
        update_available=False,
    )
    return record


def coalesce_updates(incoming: DeviceRecord) -> DeviceRecord:
    """ upsert 中可覆盖已存值的字段 """
    return {field: incoming[field] for field in MERGE_FIELDS if incoming.get(field) is not None}


def merge_device(existing: Optional[DeviceRecord], incoming: DeviceRecord, *, now: datetime) -> DeviceRecord:
    """
    将 upsert 合并进已存记录

    两种后端共用该规则：提供的字段覆盖，缺失的字段保留原值；first_seen 只设置一次，last_seen 总是更新为 now

    :param existing: 已存记录
    :param incoming: 本次上报
    :param now: 当前时间
    :return:
    """
    if existing is None:
        merged = new_device(incoming['mac'], incoming.get('first_seen') or now)
    else:
        merged = {**dict.fromkeys(DEVICE_FIELDS), **existing}
        if merged.get('first_seen') is None:
            merged['first_seen'] = incoming.get('first_seen') or now
    merged.update(coalesce_updates(incoming))
    merged['last_seen'] = now
    return merged


class StoreBackend(ABC):
    """
    持久化后端

    由关系型数据库与本地文件分别实现，网关逐次选择其一
    """

    # ---------- devices ----------

    @abstractmethod
    async def get_device(self, mac: str) -> Optional[DeviceRecord]:
        """ 获取设备记录，没有返回 None """

    @abstractmethod
    async def upsert_device(self, incoming: DeviceRecord, *, now: datetime) -> DeviceRecord:
        """
        按 merge_device 规则合并上报

        :param incoming: 本次上报
        :param now: 当前时间
        :return: 合并后的记录
        """

    @abstractmethod
    async def insert_device_if_absent(self, record: DeviceRecord) -> None:
        """ 记录不存在时写入完整记录 """

    @abstractmethod
    async def update_device(self, mac: str, fields: DeviceRecord) -> bool:
        """ 原样覆盖字段（None 即清空），设备不存在返回 False """

    @abstractmethod
    async def list_devices(self, limit: int) -> List[DeviceRecord]:
        """ 全部设备，最近在线的在前 """

    # ---------- pairing codes ----------

    @abstractmethod
    async def get_pair_code(self, mac: str) -> Optional[str]:
        """ 设备绑定的配对码 """

    @abstractmethod
    async def find_pair_code(self, code: str) -> Optional[str]:
        """ 大写配对码对应的设备 """

    @abstractmethod
    async def bind_pair_code_if_absent(self, mac: str, code: str) -> Optional[str]:
        """
        设备尚无配对码时绑定 code

        :param mac: 设备 MAC
        :param code: 配对码
        :return: 设备最终绑定的配对码；code 已被其他设备占用时返回 None
        """

    @abstractmethod
    async def replace_pair_code(self, mac: str, code: str) -> None:
        """ 一次写入替换设备的配对码 """

    @abstractmethod
    async def delete_pair_code(self, mac: str) -> bool:
        """ 删除设备的配对码 """

    # ---------- notes ----------

    @abstractmethod
    async def get_notes(self, mac: str) -> Optional[str]:
        """ 设备笔记，没有返回 None """

    @abstractmethod
    async def set_notes(self, mac: str, text: str) -> None:
        """ 覆盖笔记 """

    @abstractmethod
    async def append_notes(self, mac: str, text: str) -> None:
        """ 换行追加笔记（原笔记为空时不加换行） """

    @abstractmethod
    async def delete_notes(self, mac: str) -> bool:
        """ 删除笔记 """

    # ---------- accounts & ownership ----------

    @abstractmethod
    async def get_account(self, username: str) -> Optional[Dict[str, Any]]:
        """ 账户 {username, password_hash}，没有返回 None """

    @abstractmethod
    async def create_account(self, username: str, password_hash: str) -> bool:
        """ 创建账户，用户名已存在返回 False """

    @abstractmethod
    async def set_password(self, username: str, password_hash: str) -> bool:
        """ 替换密码哈希，账户不存在返回 False """

    @abstractmethod
    async def get_owner(self, mac: str) -> Optional[str]:
        """ 设备所属用户名 """

    @abstractmethod
    async def claim_owner_if_absent(self, mac: str, username: str) -> bool:
        """ 无归属时认领，返回本次是否认领成功 """

    @abstractmethod
    async def release_owner(self, mac: str) -> bool:
        """ 解除归属，未认领返回 False """

    @abstractmethod
    async def list_owned(self, username: str) -> List[str]:
        """ 账户名下的设备 """

    @abstractmethod
    async def list_owners(self) -> Dict[str, str]:
        """ 全部归属关系 {mac: username} """
