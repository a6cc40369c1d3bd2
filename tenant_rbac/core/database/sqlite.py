"""
Explicit-filtering backend (embedded SQLite).

The store enforces nothing. A context only remembers which org it is bound to;
isolation depends on the repositories putting an ``org_id`` predicate on every
statement that touches a tenant-scoped table.
"""
from typing import Optional

from tenant_rbac.core.config import SQLITE, Settings
from tenant_rbac.core.database.engine import sqlite_engine
from tenant_rbac.core.database.interface import Database, EngineDatabase
from tenant_rbac.utils import get_logger


log = get_logger(__name__)


class SqliteDatabase(EngineDatabase):
    backend = SQLITE

    def __init__(self, settings: Settings, org_id: Optional[str] = None):
        super().__init__(sqlite_engine(settings), org_id)
        self.settings = settings

    def upgrade_to_root(self, reason: str) -> Database:
        if self.org_id is None:
            return self
        log.info(
            "Escalating to ROOT context from org %s: %s",
            self.org_id, reason,
            extra={"from_org_id": self.org_id, "reason": reason},
        )
        return SqliteDatabase(self.settings)
