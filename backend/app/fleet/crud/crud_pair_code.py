from datetime import datetime

import sqlalchemy as sa

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy_crud_plus import CRUDPlus

from backend.app.fleet.model import PairCode
from backend.database.db import dialect_insert


class CRUDPairCode(CRUDPlus[PairCode]):

    async def get_by_mac(self, db: AsyncSession, mac: str) -> PairCode | None:
        return await self.select_model_by_column(db, mac=mac)

    async def get_by_code(self, db: AsyncSession, code: str) -> PairCode | None:
        stmt = sa.select(self.model).where(sa.func.upper(self.model.code) == code.upper())
        return (await db.scalars(stmt)).first()

    async def insert_if_absent(self, db: AsyncSession, mac: str, code: str, now: datetime) -> None:
        """ 设备已有配对码或配对码已被占用时均不写入 """
        stmt = dialect_insert(db, self.model.__table__).values(mac=mac, code=code, created_time=now)
        await db.execute(stmt.on_conflict_do_nothing())

    async def replace(self, db: AsyncSession, mac: str, code: str, now: datetime) -> None:
        table = self.model.__table__
        stmt = dialect_insert(db, table).values(mac=mac, code=code, created_time=now)
        stmt = stmt.on_conflict_do_update(index_elements=[table.c.mac], set_={'code': code, 'updated_time': now})
        await db.execute(stmt)

    async def delete_by_mac(self, db: AsyncSession, mac: str) -> int:
        return await self.delete_model_by_column(db, mac=mac)


pair_code_dao: CRUDPairCode = CRUDPairCode(PairCode)
