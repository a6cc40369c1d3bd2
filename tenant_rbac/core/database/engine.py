"""
Database engine registry and schema bootstrap.

One AsyncEngine (and therefore one connection pool) exists per storage
principal for the lifetime of the process:

PostgreSQL: postgresql+asyncpg://<principal>@host:port/db, one pool for the
restricted principal and one for the unrestricted principal.
SQLite: sqlite+aiosqlite:///<path>, a single engine per file.

Every request reuses these pools, which bounds the total connection count.
"""
import json
from functools import partial
from sqlalchemy import event
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from tenant_rbac.core.config import Settings
from tenant_rbac.utils import get_logger


log = get_logger(__name__)

_engines: dict[str, AsyncEngine] = {}

# Sorted keys so stored JSON compares equal regardless of key order
_canonical_json = partial(json.dumps, sort_keys=True)


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
    # SQLite ignores foreign keys (and their cascades) unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def postgres_engine(settings: Settings, user: str, password: str) -> AsyncEngine:
    """
    Return the shared engine for a PostgreSQL principal, creating it on first use.
    
    Args:
        settings: Storage settings (host, port, database, pool size)
        user: Database principal
        password: Principal password
    """
    key = f"{settings.db_host}:{settings.db_port}:{settings.db_name}:{user}"
    engine = _engines.get(key)
    if engine is None:
        log.debug("Creating connection pool for %s", key)
        url = URL.create(
            "postgresql+asyncpg",
            username=user,
            password=password,
            host=settings.db_host,
            port=settings.db_port,
            database=settings.db_name,
        )
        engine = create_async_engine(
            url,
            pool_size=settings.pool_size,
            max_overflow=0,
            pool_timeout=2,
            pool_recycle=30 * 60,
            pool_pre_ping=True,
            echo=False,  # Set to True for SQL query logging during development
        )
        _engines[key] = engine
    return engine


def sqlite_engine(settings: Settings) -> AsyncEngine:
    """Return the shared engine for the embedded database file."""
    path = settings.require_sqlite_path()
    key = f"sqlite:{path}"
    engine = _engines.get(key)
    if engine is None:
        log.debug("Creating SQLite engine for %s", path)
        if path == ":memory:":
            # One connection shared by everyone, otherwise each checkout sees an empty database
            engine = create_async_engine(
                "sqlite+aiosqlite://",
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
                json_serializer=_canonical_json,
            )
        else:
            # NullPool for SQLite to avoid connection pool issues
            engine = create_async_engine(
                f"sqlite+aiosqlite:///{path}", poolclass=NullPool, json_serializer=_canonical_json
            )
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        _engines[key] = engine
    return engine


async def dispose_engines():
    """Close every pool. Call on shutdown (and between test sessions)."""
    for key, engine in list(_engines.items()):
        log.debug("Disposing connection pool for %s", key)
        await engine.dispose()
    _engines.clear()


async def init_db(engine: AsyncEngine):
    """
    Create all tables.
    
    Idempotent: existing tables are left alone. Row-security policies are
    installed separately by ``security.install_row_security``.
    """
    from tenant_rbac.core.database.base import Base
    
    # Import all models to ensure they're registered with SQLAlchemy
    from tenant_rbac.features.organizations import models as _organizations  # noqa: F401
    from tenant_rbac.features.users import models as _users  # noqa: F401
    from tenant_rbac.features.roles import models as _roles  # noqa: F401
    from tenant_rbac.features.resources import models as _resources  # noqa: F401
    from tenant_rbac.features.permissions import models as _permissions  # noqa: F401
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
