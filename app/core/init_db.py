from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from app.models import Base


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """
    Initialize the database schema.

    This function creates the `stations` and `conditions` tables, their
    unique indexes, check constraints and the cascading foreign key, if
    they do not already exist.

    Args:
        bind: Engine to use. Defaults to the application engine.

    Notes:
    - This uses `Base.metadata.create_all`, which is suitable for
      development and prototyping.
    - In production environments, database migrations should be handled
      using a migration tool such as Alembic.
    """
    if bind is None:
        from app.core.db import engine as bind

    async with bind.begin() as conn:
        # Run the synchronous SQLAlchemy `create_all` operation
        # inside an asynchronous context.
        await conn.run_sync(Base.metadata.create_all)
