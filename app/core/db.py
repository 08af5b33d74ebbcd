from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """
    Turn on foreign key enforcement for every new SQLite connection.

    SQLite ships with foreign keys disabled, which would silently drop
    both the reading -> station reference check and `ON DELETE CASCADE`.
    Other backends are left untouched.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: str) -> AsyncEngine:
    """
    Create an asynchronous engine for `database_url` with the store's
    connection conventions applied.
    """
    engine = create_async_engine(
        database_url,
        pool_pre_ping=True,  # Validates connections before using them
    )
    enable_sqlite_foreign_keys(engine)
    return engine


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # `expire_on_commit=False` keeps loaded attributes readable after the
    # unit of work commits, so services can turn them into schemas.
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# ---------------------------------------------------------------------
# Default engine and session factory
# ---------------------------------------------------------------------

engine: AsyncEngine = build_engine(settings.database_url)

AsyncSessionLocal = build_session_factory(engine)
