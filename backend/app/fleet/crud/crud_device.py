from collections.abc import Sequence
from datetime import datetime
from typing import Any

import sqlalchemy as sa

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy_crud_plus import CRUDPlus

from backend.app.fleet.model import Device
from backend.database.db import dialect_insert


class CRUDDevice(CRUDPlus[Device]):

    async def get_by_mac(self, db: AsyncSession, mac: str) -> Device | None:
        return await self.select_model_by_column(db, mac=mac)

    async def get_recent(self, db: AsyncSession, limit: int) -> Sequence[Device]:
        stmt = (
            sa.select(self.model)
            .order_by(sa.func.coalesce(self.model.last_seen, self.model.created_time).desc())
            .limit(limit)
        )
        return (await db.scalars(stmt)).all()

    async def upsert_merge(
            self,
            db: AsyncSession,
            inserted: dict[str, Any],
            updates: dict[str, Any],
            now: datetime,
    ) -> None:
        """ 原子 upsert：新建时写入完整记录，冲突时仅覆盖 updates 中的字段 """
        table = self.model.__table__
        stmt = dialect_insert(db, table).values(**inserted, created_time=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.mac],
            set_={
                **updates,
                'first_seen': sa.func.coalesce(table.c.first_seen, stmt.excluded.first_seen),
                'last_seen': now,
                'updated_time': now,
            },
        )
        await db.execute(stmt)

    async def insert_if_absent(self, db: AsyncSession, record: dict[str, Any], now: datetime) -> None:
        stmt = dialect_insert(db, self.model.__table__).values(**record, created_time=now)
        await db.execute(stmt.on_conflict_do_nothing(index_elements=['mac']))

    async def update_fields(self, db: AsyncSession, mac: str, fields: dict[str, Any]) -> int:
        return await self.update_model_by_column(db, fields, mac=mac)


device_dao: CRUDDevice = CRUDDevice(Device)
