# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : file.py
@Date    : 2025/12/02 10:40
"""
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic.alias_generators import to_snake

from backend.app.fleet.repository.base import (
    DEVICE_FIELDS,
    DEVICE_TIME_FIELDS,
    DeviceRecord,
    StoreBackend,
    merge_device,
)
from backend.common.log import log
from backend.database.file_store import JsonDocument, TextDirectory
from backend.utils.timezone import timezone

# 旧版部署写入的键
LEGACY_DEVICE_KEYS = {
    'rssi': 'signal',
    'updated_at': 'update_status_time',
}


def decode_device(mac: str, raw: Dict[str, Any]) -> DeviceRecord:
    """ 规范化文档中的设备条目（兼容旧版 camelCase 键） """
    record: DeviceRecord = dict.fromkeys(DEVICE_FIELDS)
    for key, value in raw.items():
        field = to_snake(key)
        field = LEGACY_DEVICE_KEYS.get(field, field)
        if field not in record or value in (None, ''):
            continue
        if field in DEVICE_TIME_FIELDS:
            try:
                value = timezone.from_iso(value)
            except (TypeError, ValueError):
                log.warning(f'[file_store] 设备 {mac} 字段 {field} 时间格式无效: {value!r}')
                continue
        record[field] = value
    record['mac'] = mac
    if record['update_available'] is None:
        record['update_available'] = False
    return record


def _seen_key(record: DeviceRecord) -> float:
    seen = record.get('last_seen')
    return seen.timestamp() if isinstance(seen, datetime) else float('-inf')


class FileBackend(StoreBackend):
    """
    本地文件实现

    每张逻辑表一个 JSON 文档，每台设备的笔记一个文本文件；文档的读改写在锁内完成
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.devices = JsonDocument(self.root / 'devices.json')
        self.pair_codes = JsonDocument(self.root / 'pair-pins.json')
        self.accounts = JsonDocument(self.root / 'accounts.json')
        self.owners = JsonDocument(self.root / 'owners.json')
        self.notes = TextDirectory(self.root / 'notes')

    # ---------- devices ----------

    async def get_device(self, mac: str) -> Optional[DeviceRecord]:
        raw = self.devices.read().get(mac)
        return decode_device(mac, raw) if isinstance(raw, dict) else None

    async def upsert_device(self, incoming: DeviceRecord, *, now: datetime) -> DeviceRecord:
        mac = incoming['mac']
        async with self.devices.lock:
            data = self.devices.read()
            raw = data.get(mac)
            existing = decode_device(mac, raw) if isinstance(raw, dict) else None
            merged = merge_device(existing, incoming, now=now)
            data[mac] = merged
            self.devices.write(data)
        return merged

    async def insert_device_if_absent(self, record: DeviceRecord) -> None:
        async with self.devices.lock:
            data = self.devices.read()
            if record['mac'] in data:
                return
            data[record['mac']] = record
            self.devices.write(data)

    async def update_device(self, mac: str, fields: DeviceRecord) -> bool:
        async with self.devices.lock:
            data = self.devices.read()
            raw = data.get(mac)
            if not isinstance(raw, dict):
                return False
            record = decode_device(mac, raw)
            record.update(fields)
            data[mac] = record
            self.devices.write(data)
        return True

    async def list_devices(self, limit: int) -> List[DeviceRecord]:
        records = [decode_device(mac, raw) for mac, raw in self.devices.read().items() if isinstance(raw, dict)]
        records.sort(key=_seen_key, reverse=True)
        return records[:limit]

    # ---------- pairing codes ----------

    async def get_pair_code(self, mac: str) -> Optional[str]:
        code = self.pair_codes.read().get(mac)
        return str(code).upper() if code else None

    async def find_pair_code(self, code: str) -> Optional[str]:
        code = code.upper()
        for mac, bound in self.pair_codes.read().items():
            if bound and str(bound).upper() == code:
                return mac
        return None

    async def bind_pair_code_if_absent(self, mac: str, code: str) -> Optional[str]:
        async with self.pair_codes.lock:
            data = self.pair_codes.read()
            if data.get(mac):
                return str(data[mac]).upper()
            if any(str(bound).upper() == code for bound in data.values() if bound):
                return None
            data[mac] = code
            self.pair_codes.write(data)
        return code

    async def replace_pair_code(self, mac: str, code: str) -> None:
        async with self.pair_codes.lock:
            data = self.pair_codes.read()
            data[mac] = code
            self.pair_codes.write(data)

    async def delete_pair_code(self, mac: str) -> bool:
        async with self.pair_codes.lock:
            data = self.pair_codes.read()
            if data.pop(mac, None) is None:
                return False
            self.pair_codes.write(data)
        return True

    # ---------- notes ----------

    async def get_notes(self, mac: str) -> Optional[str]:
        return self.notes.read(mac)

    async def set_notes(self, mac: str, text: str) -> None:
        async with self.notes.lock:
            self.notes.write(mac, text)

    async def append_notes(self, mac: str, text: str) -> None:
        async with self.notes.lock:
            current = self.notes.read(mac)
            self.notes.write(mac, f'{current}\n{text}' if current else text)

    async def delete_notes(self, mac: str) -> bool:
        async with self.notes.lock:
            return self.notes.delete(mac)

    # ---------- accounts & ownership ----------

    async def get_account(self, username: str) -> Optional[Dict[str, Any]]:
        account = self.accounts.read().get(username)
        if not isinstance(account, dict) or not account.get('password_hash'):
            return None
        return {'username': username, 'password_hash': account['password_hash']}

    async def create_account(self, username: str, password_hash: str) -> bool:
        async with self.accounts.lock:
            data = self.accounts.read()
            if username in data:
                return False
            data[username] = {'password_hash': password_hash, 'created_time': timezone.now()}
            self.accounts.write(data)
        return True

    async def set_password(self, username: str, password_hash: str) -> bool:
        async with self.accounts.lock:
            data = self.accounts.read()
            if not isinstance(data.get(username), dict):
                return False
            data[username]['password_hash'] = password_hash
            self.accounts.write(data)
        return True

    async def get_owner(self, mac: str) -> Optional[str]:
        return self.owners.read().get(mac) or None

    async def claim_owner_if_absent(self, mac: str, username: str) -> bool:
        async with self.owners.lock:
            data = self.owners.read()
            if data.get(mac):
                return False
            data[mac] = username
            self.owners.write(data)
        return True

    async def release_owner(self, mac: str) -> bool:
        async with self.owners.lock:
            data = self.owners.read()
            if not data.pop(mac, None):
                return False
            self.owners.write(data)
        return True

    async def list_owned(self, username: str) -> List[str]:
        return sorted(mac for mac, owner in self.owners.read().items() if owner == username)

    async def list_owners(self) -> Dict[str, str]:
        return {mac: owner for mac, owner in self.owners.read().items() if owner}
