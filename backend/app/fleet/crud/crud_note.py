from datetime import datetime

import sqlalchemy as sa

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy_crud_plus import CRUDPlus

from backend.app.fleet.model import Note
from backend.database.db import dialect_insert


class CRUDNote(CRUDPlus[Note]):

    async def get_by_mac(self, db: AsyncSession, mac: str) -> Note | None:
        return await self.select_model_by_column(db, mac=mac)

    async def set_text(self, db: AsyncSession, mac: str, text: str, now: datetime) -> None:
        table = self.model.__table__
        stmt = dialect_insert(db, table).values(mac=mac, text=text, created_time=now)
        stmt = stmt.on_conflict_do_update(index_elements=[table.c.mac], set_={'text': text, 'updated_time': now})
        await db.execute(stmt)

    async def append_text(self, db: AsyncSession, mac: str, text: str, now: datetime) -> None:
        """ 原子追加，已有内容时以换行分隔 """
        table = self.model.__table__
        stmt = dialect_insert(db, table).values(mac=mac, text=text, created_time=now)
        appended = sa.case(
            (table.c.text == '', stmt.excluded.text),
            else_=table.c.text + '\n' + stmt.excluded.text,
        )
        stmt = stmt.on_conflict_do_update(index_elements=[table.c.mac], set_={'text': appended, 'updated_time': now})
        await db.execute(stmt)

    async def delete_by_mac(self, db: AsyncSession, mac: str) -> int:
        return await self.delete_model_by_column(db, mac=mac)


note_dao: CRUDNote = CRUDNote(Note)
