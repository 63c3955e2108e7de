# -*- coding: UTF-8 -*-
"""
@Project : calcfleet
@File    : gateway.py
@Date    : 2025/12/02 11:20
"""
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from backend.app.fleet.repository.base import DeviceRecord
from backend.app.fleet.repository.file import FileBackend
from backend.app.fleet.repository.sql import SqlBackend
from backend.common.exception.errors import StorageUnavailableError
from backend.common.log import log
from backend.core.conf import settings
from backend.database.db import ConnectionState, RelationalStore, relational_store

# 数据库不可用时 _on_sql 的返回值
UNAVAILABLE: Any = object()


class PersistenceGateway:
    """
    设备数据持久化网关

    配置了关系型数据库且连接可用时优先使用数据库，否则透明回退到文件存储；
    数据库读取未命中时会检查文件存储，并把旧记录迁移进数据库（backfill-on-miss）
    """

    def __init__(self, store: RelationalStore, files: FileBackend):
        self.store = store
        self.sql = SqlBackend(store)
        self.files = files

    @property
    def state(self) -> ConnectionState:
        return self.store.state

    async def startup(self) -> None:
        if not self.store.enabled:
            log.info(f'[gateway] 未配置数据库，使用文件存储 {self.files.root}')
            return
        await self.store.ensure_ready()

    async def shutdown(self) -> None:
        await self.store.close()

    async def _on_sql(self, name: str, action: Callable[[], Awaitable[Any]]) -> Any:
        """
        数据库可用时执行 action

        :param name: 操作名称，用于日志
        :param action: 基于 self.sql 的操作
        :return: action 的结果；数据库未就绪或连接丢失时返回 UNAVAILABLE
        """
        if not await self.store.ensure_ready():
            return UNAVAILABLE
        try:
            return await action()
        except StorageUnavailableError:
            log.warning(f'[gateway] {name} 回退至文件存储')
            return UNAVAILABLE

    async def _call(self, name: str, *args: Any) -> Any:
        """ 在当前可用的后端上执行同名操作 """
        result = await self._on_sql(name, lambda: getattr(self.sql, name)(*args))
        if result is UNAVAILABLE:
            return await getattr(self.files, name)(*args)
        return result

    # ---------- devices ----------

    async def _backfill_device(self, mac: str) -> Optional[DeviceRecord]:
        record = await self.sql.get_device(mac)
        if record is not None:
            return record
        legacy = await self.files.get_device(mac)
        if legacy is None:
            return None
        await self.sql.insert_device_if_absent(legacy)
        log.info(f'[gateway] 设备 {mac} 已从文件存储迁移')
        return await self.sql.get_device(mac)

    async def get_device(self, mac: str) -> Optional[DeviceRecord]:
        record = await self._on_sql('get_device', lambda: self._backfill_device(mac))
        if record is UNAVAILABLE:
            return await self.files.get_device(mac)
        return record

    async def upsert_device(self, incoming: DeviceRecord, *, now: datetime) -> DeviceRecord:
        async def run() -> DeviceRecord:
            await self._backfill_device(incoming['mac'])
            return await self.sql.upsert_device(incoming, now=now)

        record = await self._on_sql('upsert_device', run)
        if record is UNAVAILABLE:
            return await self.files.upsert_device(incoming, now=now)
        return record

    async def update_device(self, mac: str, fields: DeviceRecord) -> bool:
        async def run() -> bool:
            await self._backfill_device(mac)
            return await self.sql.update_device(mac, fields)

        updated = await self._on_sql('update_device', run)
        if updated is UNAVAILABLE:
            return await self.files.update_device(mac, fields)
        return updated

    async def list_devices(self, limit: int = settings.DEVICE_LIST_LIMIT) -> List[DeviceRecord]:
        async def run() -> List[DeviceRecord]:
            records = await self.sql.list_devices(limit)
            known = {record['mac'] for record in records}
            legacy = [record for record in await self.files.list_devices(limit) if record['mac'] not in known]
            if not legacy:
                return records
            for record in legacy:
                await self.sql.insert_device_if_absent(record)
            log.info(f'[gateway] {len(legacy)} 台设备已从文件存储迁移')
            return await self.sql.list_devices(limit)

        records = await self._on_sql('list_devices', run)
        if records is UNAVAILABLE:
            return await self.files.list_devices(limit)
        return records

    # ---------- pairing codes ----------

    async def _backfill_pair_code(self, mac: str, code: str) -> Optional[str]:
        bound = await self.sql.bind_pair_code_if_absent(mac, code)
        await self.files.delete_pair_code(mac)
        log.info(f'[gateway] 设备 {mac} 配对码已从文件存储迁移')
        return bound

    async def get_pair_code(self, mac: str) -> Optional[str]:
        async def run() -> Optional[str]:
            code = await self.sql.get_pair_code(mac)
            if code is None and (legacy := await self.files.get_pair_code(mac)):
                code = await self._backfill_pair_code(mac, legacy)
            return code

        code = await self._on_sql('get_pair_code', run)
        if code is UNAVAILABLE:
            return await self.files.get_pair_code(mac)
        return code

    async def find_pair_code(self, code: str) -> Optional[str]:
        code = code.upper()

        async def run() -> Optional[str]:
            mac = await self.sql.find_pair_code(code)
            if mac is None and (legacy := await self.files.find_pair_code(code)):
                if await self._backfill_pair_code(legacy, code) == code:
                    mac = legacy
            return mac

        mac = await self._on_sql('find_pair_code', run)
        if mac is UNAVAILABLE:
            return await self.files.find_pair_code(code)
        return mac

    async def bind_pair_code_if_absent(self, mac: str, code: str) -> Optional[str]:
        return await self._call('bind_pair_code_if_absent', mac, code)

    async def replace_pair_code(self, mac: str, code: str) -> None:
        await self._call('replace_pair_code', mac, code)
        if self.store.ready:
            await self.files.delete_pair_code(mac)

    async def delete_pair_code(self, mac: str) -> bool:
        deleted = await self._call('delete_pair_code', mac)
        return await self.files.delete_pair_code(mac) or deleted

    # ---------- notes ----------

    async def get_notes(self, mac: str) -> Optional[str]:
        async def run() -> Optional[str]:
            text = await self.sql.get_notes(mac)
            if text is None and (legacy := await self.files.get_notes(mac)) is not None:
                await self.sql.set_notes(mac, legacy)
                await self.files.delete_notes(mac)
                log.info(f'[gateway] 设备 {mac} 笔记已从文件存储迁移')
                text = await self.sql.get_notes(mac)
            return text

        text = await self._on_sql('get_notes', run)
        if text is UNAVAILABLE:
            return await self.files.get_notes(mac)
        return text

    async def set_notes(self, mac: str, text: str) -> None:
        await self._call('set_notes', mac, text)
        if self.store.ready:
            await self.files.delete_notes(mac)

    async def append_notes(self, mac: str, text: str) -> None:
        # 先触发迁移，避免追加到空记录上
        await self.get_notes(mac)
        await self._call('append_notes', mac, text)

    async def delete_notes(self, mac: str) -> bool:
        deleted = await self._call('delete_notes', mac)
        return await self.files.delete_notes(mac) or deleted

    # ---------- accounts & ownership ----------

    async def get_account(self, username: str) -> Optional[Dict[str, Any]]:
        async def run() -> Optional[Dict[str, Any]]:
            account = await self.sql.get_account(username)
            if account is None and (legacy := await self.files.get_account(username)):
                await self.sql.create_account(username, legacy['password_hash'])
                log.info(f'[gateway] 账户 {username} 已从文件存储迁移')
                account = await self.sql.get_account(username)
            return account

        account = await self._on_sql('get_account', run)
        if account is UNAVAILABLE:
            return await self.files.get_account(username)
        return account

    async def create_account(self, username: str, password_hash: str) -> bool:
        if await self.get_account(username) is not None:
            return False
        return await self._call('create_account', username, password_hash)

    async def set_password(self, username: str, password_hash: str) -> bool:
        await self.get_account(username)
        return await self._call('set_password', username, password_hash)

    async def get_owner(self, mac: str) -> Optional[str]:
        async def run() -> Optional[str]:
            owner = await self.sql.get_owner(mac)
            if owner is None and (legacy := await self.files.get_owner(mac)):
                await self.sql.claim_owner_if_absent(mac, legacy)
                log.info(f'[gateway] 设备 {mac} 归属已从文件存储迁移')
                owner = await self.sql.get_owner(mac)
            return owner

        owner = await self._on_sql('get_owner', run)
        if owner is UNAVAILABLE:
            return await self.files.get_owner(mac)
        return owner

    async def claim_owner_if_absent(self, mac: str, username: str) -> bool:
        if await self.get_owner(mac) is not None:
            return False
        return await self._call('claim_owner_if_absent', mac, username)

    async def release_owner(self, mac: str) -> bool:
        await self.get_owner(mac)
        released = await self._call('release_owner', mac)
        if self.store.ready:
            released = await self.files.release_owner(mac) or released
        return released

    async def list_owned(self, username: str) -> List[str]:
        owners = await self.list_owners()
        return sorted(mac for mac, owner in owners.items() if owner == username)

    async def list_owners(self) -> Dict[str, str]:
        async def run() -> Dict[str, str]:
            owners = await self.sql.list_owners()
            legacy = {mac: owner for mac, owner in (await self.files.list_owners()).items() if mac not in owners}
            if not legacy:
                return owners
            for mac, owner in legacy.items():
                await self.sql.claim_owner_if_absent(mac, owner)
            log.info(f'[gateway] {len(legacy)} 条设备归属已从文件存储迁移')
            return await self.sql.list_owners()

        owners = await self._on_sql('list_owners', run)
        if owners is UNAVAILABLE:
            return await self.files.list_owners()
        return owners


def create_gateway(store: RelationalStore, root: str | Path) -> PersistenceGateway:
    return PersistenceGateway(store, FileBackend(Path(root)))


persistence_gateway: PersistenceGateway = create_gateway(relational_store, settings.STORE_DIR)
