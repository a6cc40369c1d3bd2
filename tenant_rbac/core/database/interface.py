"""
The query surface every repository talks to.

Two families of implementations sit behind it:

* ``postgres.RlsDatabase`` / ``postgres.UnrestrictedDatabase`` - isolation is
  enforced by row-security policies keyed on a session variable.
* ``sqlite.SqliteDatabase`` - no enforcement in the store; repositories add an
  ``org_id`` predicate to every statement.

``lazy.LazyDatabase`` defers the choice (and the connection) until first use.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional, Protocol
from sqlalchemy import RowMapping
from sqlalchemy.exc import NoResultFound
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.sql import Executable


class Database(Protocol):
    """
    Backend-neutral query interface.

    ``org_id`` is the tenant the context is bound to, or ``None`` for an
    unrestricted (ROOT) context.
    """
    org_id: Optional[str]
    backend: str

    async def query(self, statement: Executable) -> list[RowMapping]: ...

    async def one(self, statement: Executable) -> RowMapping: ...

    async def one_or_none(self, statement: Executable) -> Optional[RowMapping]: ...

    async def many(self, statement: Executable) -> list[RowMapping]: ...

    async def many_or_none(self, statement: Executable) -> list[RowMapping]: ...

    async def none(self, statement: Executable) -> None: ...

    async def result(self, statement: Executable) -> int: ...

    def tx(self) -> "AsyncIterator[Database]": ...

    def upgrade_to_root(self, reason: str) -> "Database": ...


def _rows(result) -> list[RowMapping]:
    if not result.returns_rows:
        return []
    return list(result.mappings().all())


class ConnectionDatabase:
    """
    Database bound to a single open connection.

    Handed out by ``tx()``: every statement runs on the same connection inside
    the same transaction, so the whole block commits or rolls back together.
    """

    def __init__(
        self,
        connection: AsyncConnection,
        org_id: Optional[str],
        backend: str,
        escalate: Callable[[str], "Database"],
    ):
        self.connection = connection
        self.org_id = org_id
        self.backend = backend
        self._escalate = escalate

    async def query(self, statement: Executable) -> list[RowMapping]:
        return _rows(await self.connection.execute(statement))

    async def one(self, statement: Executable) -> RowMapping:
        result = await self.connection.execute(statement)
        return result.mappings().one()

    async def one_or_none(self, statement: Executable) -> Optional[RowMapping]:
        result = await self.connection.execute(statement)
        return result.mappings().one_or_none()

    async def many(self, statement: Executable) -> list[RowMapping]:
        rows = await self.query(statement)
        if not rows:
            raise NoResultFound("Expected at least one row, got none")
        return rows

    async def many_or_none(self, statement: Executable) -> list[RowMapping]:
        return await self.query(statement)

    async def none(self, statement: Executable) -> None:
        await self.connection.execute(statement)

    async def result(self, statement: Executable) -> int:
        """Execute and return the number of affected rows."""
        result = await self.connection.execute(statement)
        return result.rowcount

    @asynccontextmanager
    async def tx(self) -> AsyncIterator["ConnectionDatabase"]:
        # Already inside a transaction; nested blocks join it
        yield self

    def upgrade_to_root(self, reason: str) -> "Database":
        # A new context on its own connection; this transaction keeps its tenant
        return self._escalate(reason)


class EngineDatabase:
    """
    Database that checks a pooled connection out of ``engine`` per call.

    Subclasses decide how a freshly checked-out connection is prepared
    (``_prepare``) and what escalation returns (``upgrade_to_root``).
    """
    backend: str = ""

    def __init__(self, engine: AsyncEngine, org_id: Optional[str] = None):
        self.engine = engine
        self.org_id = org_id

    async def _prepare(self, connection: AsyncConnection) -> None:
        return None

    def upgrade_to_root(self, reason: str) -> "Database":
        raise NotImplementedError

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[ConnectionDatabase]:
        async with self.engine.begin() as connection:
            await self._prepare(connection)
            yield ConnectionDatabase(connection, self.org_id, self.backend, self.upgrade_to_root)

    async def _run(self, method: str, statement: Executable):
        async with self._connect() as bound:
            return await getattr(bound, method)(statement)

    async def query(self, statement: Executable) -> list[RowMapping]:
        return await self._run("query", statement)

    async def one(self, statement: Executable) -> RowMapping:
        return await self._run("one", statement)

    async def one_or_none(self, statement: Executable) -> Optional[RowMapping]:
        return await self._run("one_or_none", statement)

    async def many(self, statement: Executable) -> list[RowMapping]:
        return await self._run("many", statement)

    async def many_or_none(self, statement: Executable) -> list[RowMapping]:
        return await self._run("many_or_none", statement)

    async def none(self, statement: Executable) -> None:
        await self._run("none", statement)

    async def result(self, statement: Executable) -> int:
        return await self._run("result", statement)

    @asynccontextmanager
    async def tx(self) -> AsyncIterator[ConnectionDatabase]:
        async with self._connect() as bound:
            yield bound
