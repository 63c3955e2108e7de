# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : sql.py
@Date    : 2025/12/02 10:05
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from backend.app.fleet.crud.crud_account import account_dao, device_owner_dao
from backend.app.fleet.crud.crud_device import device_dao
from backend.app.fleet.crud.crud_note import note_dao
from backend.app.fleet.crud.crud_pair_code import pair_code_dao
from backend.app.fleet.model import Device
from backend.app.fleet.repository.base import (
    DEVICE_FIELDS,
    DeviceRecord,
    StoreBackend,
    coalesce_updates,
    merge_device,
)
from backend.database.db import RelationalStore
from backend.utils.timezone import timezone


def device_to_record(device: Device) -> DeviceRecord:
    return {field: getattr(device, field) for field in DEVICE_FIELDS}


class SqlBackend(StoreBackend):
    """关系型数据库实现，每次调用独立事务"""

    def __init__(self, store: RelationalStore):
        self.store = store

    # ---------- devices ----------

    async def get_device(self, mac: str) -> Optional[DeviceRecord]:
        async with self.store.transaction() as db:
            device = await device_dao.get_by_mac(db, mac)
            return device_to_record(device) if device else None

    async def upsert_device(self, incoming: DeviceRecord, *, now: datetime) -> DeviceRecord:
        inserted = merge_device(None, incoming, now=now)
        async with self.store.transaction() as db:
            await device_dao.upsert_merge(db, inserted, coalesce_updates(incoming), now)
        async with self.store.transaction() as db:
            device = await device_dao.get_by_mac(db, incoming['mac'])
            return device_to_record(device)

    async def insert_device_if_absent(self, record: DeviceRecord) -> None:
        async with self.store.transaction() as db:
            await device_dao.insert_if_absent(db, {f: record.get(f) for f in DEVICE_FIELDS}, timezone.now())

    async def update_device(self, mac: str, fields: DeviceRecord) -> bool:
        async with self.store.transaction() as db:
            return await device_dao.update_fields(db, mac, fields) > 0

    async def list_devices(self, limit: int) -> List[DeviceRecord]:
        async with self.store.transaction() as db:
            return [device_to_record(device) for device in await device_dao.get_recent(db, limit)]

    # ---------- pairing codes ----------

    async def get_pair_code(self, mac: str) -> Optional[str]:
        async with self.store.transaction() as db:
            pair = await pair_code_dao.get_by_mac(db, mac)
            return pair.code if pair else None

    async def find_pair_code(self, code: str) -> Optional[str]:
        async with self.store.transaction() as db:
            pair = await pair_code_dao.get_by_code(db, code)
            return pair.mac if pair else None

    async def bind_pair_code_if_absent(self, mac: str, code: str) -> Optional[str]:
        async with self.store.transaction() as db:
            await pair_code_dao.insert_if_absent(db, mac, code, timezone.now())
        async with self.store.transaction() as db:
            pair = await pair_code_dao.get_by_mac(db, mac)
            return pair.code if pair else None

    async def replace_pair_code(self, mac: str, code: str) -> None:
        async with self.store.transaction() as db:
            await pair_code_dao.replace(db, mac, code, timezone.now())

    async def delete_pair_code(self, mac: str) -> bool:
        async with self.store.transaction() as db:
            return await pair_code_dao.delete_by_mac(db, mac) > 0

    # ---------- notes ----------

    async def get_notes(self, mac: str) -> Optional[str]:
        async with self.store.transaction() as db:
            note = await note_dao.get_by_mac(db, mac)
            return note.text if note else None

    async def set_notes(self, mac: str, text: str) -> None:
        async with self.store.transaction() as db:
            await note_dao.set_text(db, mac, text, timezone.now())

    async def append_notes(self, mac: str, text: str) -> None:
        async with self.store.transaction() as db:
            await note_dao.append_text(db, mac, text, timezone.now())

    async def delete_notes(self, mac: str) -> bool:
        async with self.store.transaction() as db:
            return await note_dao.delete_by_mac(db, mac) > 0

    # ---------- accounts & ownership ----------

    async def get_account(self, username: str) -> Optional[Dict[str, Any]]:
        async with self.store.transaction() as db:
            account = await account_dao.get_by_username(db, username)
            if account is None:
                return None
            return {'username': account.username, 'password_hash': account.password_hash}

    async def create_account(self, username: str, password_hash: str) -> bool:
        async with self.store.transaction() as db:
            return await account_dao.insert_if_absent(db, username, password_hash, timezone.now()) > 0

    async def set_password(self, username: str, password_hash: str) -> bool:
        async with self.store.transaction() as db:
            return await account_dao.update_password(db, username, password_hash) > 0

    async def get_owner(self, mac: str) -> Optional[str]:
        async with self.store.transaction() as db:
            owner = await device_owner_dao.get_by_mac(db, mac)
            return owner.username if owner else None

    async def claim_owner_if_absent(self, mac: str, username: str) -> bool:
        async with self.store.transaction() as db:
            return await device_owner_dao.insert_if_absent(db, mac, username, timezone.now()) > 0

    async def release_owner(self, mac: str) -> bool:
        async with self.store.transaction() as db:
            return await device_owner_dao.delete_by_mac(db, mac) > 0

    async def list_owned(self, username: str) -> List[str]:
        async with self.store.transaction() as db:
            return sorted(owner.mac for owner in await device_owner_dao.get_by_username(db, username))

    async def list_owners(self) -> Dict[str, str]:
        async with self.store.transaction() as db:
            return {owner.mac: owner.username for owner in await device_owner_dao.get_all(db)}
