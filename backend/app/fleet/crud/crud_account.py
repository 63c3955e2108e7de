from collections.abc import Sequence
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy_crud_plus import CRUDPlus

from backend.app.fleet.model import Account, DeviceOwner
from backend.database.db import dialect_insert


class CRUDAccount(CRUDPlus[Account]):

    async def get_by_username(self, db: AsyncSession, username: str) -> Account | None:
        return await self.select_model_by_column(db, username=username)

    async def insert_if_absent(self, db: AsyncSession, username: str, password_hash: str, now: datetime) -> int:
        stmt = dialect_insert(db, self.model.__table__).values(
            username=username, password_hash=password_hash, created_time=now
        )
        result = await db.execute(stmt.on_conflict_do_nothing(index_elements=['username']))
        return result.rowcount

    async def update_password(self, db: AsyncSession, username: str, password_hash: str) -> int:
        return await self.update_model_by_column(db, {'password_hash': password_hash}, username=username)


class CRUDDeviceOwner(CRUDPlus[DeviceOwner]):

    async def get_by_mac(self, db: AsyncSession, mac: str) -> DeviceOwner | None:
        return await self.select_model_by_column(db, mac=mac)

    async def get_by_username(self, db: AsyncSession, username: str) -> Sequence[DeviceOwner]:
        return await self.select_models(db, username=username)

    async def get_all(self, db: AsyncSession) -> Sequence[DeviceOwner]:
        return await self.select_models(db)

    async def insert_if_absent(self, db: AsyncSession, mac: str, username: str, now: datetime) -> int:
        """ 仅在设备未被认领时写入，返回写入行数 """
        stmt = dialect_insert(db, self.model.__table__).values(
            mac=mac, username=username, claimed_time=now, created_time=now
        )
        result = await db.execute(stmt.on_conflict_do_nothing(index_elements=['mac']))
        return result.rowcount

    async def delete_by_mac(self, db: AsyncSession, mac: str) -> int:
        return await self.delete_model_by_column(db, mac=mac)


account_dao: CRUDAccount = CRUDAccount(Account)
device_owner_dao: CRUDDeviceOwner = CRUDDeviceOwner(DeviceOwner)
