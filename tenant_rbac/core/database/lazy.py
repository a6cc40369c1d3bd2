"""
Lazy database wrapper.

Nothing is connected when a request context is built. The first query picks
the implementation: a tenant-scoped database when an org id was supplied, an
unrestricted one otherwise, on whichever backend the settings select.
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from sqlalchemy import RowMapping
from sqlalchemy.sql import Executable

from tenant_rbac.core.config import POSTGRES, Settings
from tenant_rbac.core.database.interface import Database
from tenant_rbac.core.database.postgres import ROOT_ORG_ID, create_rls_db, create_unrestricted_db
from tenant_rbac.core.database.sqlite import SqliteDatabase
from tenant_rbac.utils import get_logger


log = get_logger(__name__)


class LazyDatabase:
    """
    Defers connection setup until the first statement.
    
    ``upgrade_to_root`` never mutates this object: it returns a new, unbound
    LazyDatabase, so a transaction running on this context keeps its tenant
    boundary.
    """

    def __init__(self, settings: Settings, org_id: Optional[str] = None):
        self.settings = settings
        self.org_id = None if org_id == ROOT_ORG_ID else (org_id or None)
        self.backend = settings.backend
        self._db: Optional[Database] = None

    def _ensure_initialized(self) -> Database:
        if self._db is None:
            log.debug(
                "Initializing %s database for org: %s",
                self.backend, self.org_id or ROOT_ORG_ID,
                extra={"org_id": self.org_id, "backend": self.backend},
            )
            if self.backend == POSTGRES:
                if self.org_id:
                    self._db = create_rls_db(self.settings, self.org_id)
                else:
                    self._db = create_unrestricted_db(self.settings)
            else:
                self._db = SqliteDatabase(self.settings, self.org_id)
        return self._db

    @property
    def is_initialized(self) -> bool:
        return self._db is not None

    async def query(self, statement: Executable) -> list[RowMapping]:
        return await self._ensure_initialized().query(statement)

    async def one(self, statement: Executable) -> RowMapping:
        return await self._ensure_initialized().one(statement)

    async def one_or_none(self, statement: Executable) -> Optional[RowMapping]:
        return await self._ensure_initialized().one_or_none(statement)

    async def many(self, statement: Executable) -> list[RowMapping]:
        return await self._ensure_initialized().many(statement)

    async def many_or_none(self, statement: Executable) -> list[RowMapping]:
        return await self._ensure_initialized().many_or_none(statement)

    async def none(self, statement: Executable) -> None:
        await self._ensure_initialized().none(statement)

    async def result(self, statement: Executable) -> int:
        return await self._ensure_initialized().result(statement)

    @asynccontextmanager
    async def tx(self) -> AsyncIterator[Database]:
        async with self._ensure_initialized().tx() as bound:
            yield bound

    def upgrade_to_root(self, reason: str) -> Database:
        """
        Return a ROOT view of this context.
        
        Args:
            reason: Why cross-tenant access is needed, recorded for audit
        
        Returns:
            This object when it is already unrestricted, otherwise a new
            unbound LazyDatabase
        """
        if self.org_id is None:
            return self

        log.info(
            "Creating ROOT context from org %s: %s",
            self.org_id, reason,
            extra={"from_org_id": self.org_id, "reason": reason},
        )
        return LazyDatabase(self.settings)


def create_lazy_db(settings: Settings, org_id: Optional[str] = None) -> Database:
    """Create a lazy database, tenant-scoped when ``org_id`` is given."""
    return LazyDatabase(settings, org_id)
