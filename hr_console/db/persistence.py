"""Row-level access to the console's tables.

Screens and the job-history commit talk to storage in plain rows (column
name -> value dicts) addressed by logical table name, the same shape the
hosted backend used to hand out. Predicates are equality maps, so
``{"empno": "1001"}`` selects one employee's rows.

Nothing here commits on its own: callers decide when a unit of work ends
by calling ``commit()`` or ``rollback()``.
"""
from typing import Any, Iterable, Mapping

from sqlalchemy import Table, delete, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hr_console.models.department import Department
from hr_console.models.employee import Employee
from hr_console.models.job import Job
from hr_console.models.job_history import JobHistory

Row = dict[str, Any]

TABLES: dict[str, Table] = {
    "employee": Employee.__table__,
    "department": Department.__table__,
    "job": Job.__table__,
    "jobhistory": JobHistory.__table__,
}


class UnknownTable(KeyError):
    pass


class Persistence:
    def __init__(self, db: AsyncSession):
        self.db = db

    def _table(self, name: str) -> Table:
        try:
            return TABLES[name]
        except KeyError:
            raise UnknownTable(name) from None

    @staticmethod
    def _where(table: Table, predicate: Mapping[str, Any]):
        return [table.c[col] == value for col, value in predicate.items()]

    @staticmethod
    def _ordered(stmt, table: Table, order_by: str | None, descending: bool):
        if not order_by:
            return stmt
        col = table.c[order_by]
        return stmt.order_by(col.desc() if descending else col.asc())

    async def select_all(self, table: str, order_by: str | None = None, descending: bool = False) -> list[Row]:
        t = self._table(table)
        stmt = self._ordered(select(t), t, order_by, descending)
        res = await self.db.execute(stmt)
        return [dict(r) for r in res.mappings().all()]

    async def select_where(
        self,
        table: str,
        predicate: Mapping[str, Any],
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Row]:
        t = self._table(table)
        stmt = self._ordered(select(t).where(*self._where(t, predicate)), t, order_by, descending)
        res = await self.db.execute(stmt)
        return [dict(r) for r in res.mappings().all()]

    async def insert(self, table: str, rows: Iterable[Mapping[str, Any]]) -> int:
        rows = [dict(r) for r in rows]
        if not rows:
            return 0
        t = self._table(table)
        await self.db.execute(insert(t), rows)
        return len(rows)

    async def update(self, table: str, predicate: Mapping[str, Any], patch: Mapping[str, Any]) -> int:
        t = self._table(table)
        res = await self.db.execute(update(t).where(*self._where(t, predicate)).values(**patch))
        return res.rowcount

    async def delete(self, table: str, predicate: Mapping[str, Any]) -> int:
        t = self._table(table)
        res = await self.db.execute(delete(t).where(*self._where(t, predicate)))
        return res.rowcount

    async def count(self, table: str) -> int:
        t = self._table(table)
        res = await self.db.execute(select(func.count()).select_from(t))
        return res.scalar_one()

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()
