from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.station import Station


class StationRepository:
    """
    Repository for managing weather station persistence.

    This repository encapsulates all database operations related to
    `Station` entities. It only flushes; committing or rolling back is
    the job of the unit of work that owns the session.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with an active database session.

        Args:
            db: Asynchronous SQLAlchemy session.
        """
        self.db = db

    async def get_by_id(
        self,
        station_id: int,
        lock: Optional[str] = None,
    ) -> Optional[Station]:
        """
        Return a station by its internal DB id, or None if not found.

        Args:
            station_id: Internal identifier of the station.
            lock: "share" to hold a shared row lock (readings being added)
                or "update" to hold an exclusive one (station being
                changed or deleted) until the transaction ends. Backends
                without row locks, such as SQLite, ignore it.
        """
        stmt = select(Station).where(Station.id == station_id)
        if lock == "share":
            stmt = stmt.with_for_update(read=True)
        elif lock == "update":
            stmt = stmt.with_for_update()
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def get_by_key(self, key: str) -> Optional[Station]:
        """
        Retrieve a station by its derived key.

        The lookup is served by the unique index `uq_station_key`.
        """
        stmt = select(Station).where(Station.key == key)
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def find_by_name(self, name: str) -> List[Station]:
        """
        Return every station called `name`. Names are not unique on their
        own; only name plus truncated coordinates is.
        """
        stmt = select(Station).where(Station.name == name).order_by(Station.id.asc())
        res = await self.db.execute(stmt)
        return list(res.scalars().all())

    async def get_with_conditions(self, station_id: int) -> Optional[Station]:
        """
        Return a station with its `conditions` collection loaded in time order.
        """
        stmt = (
            select(Station)
            .where(Station.id == station_id)
            .options(selectinload(Station.conditions))
        )
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def add(self, station: Station) -> Station:
        self.db.add(station)

        # Flush to obtain the generated primary key and to let the unique
        # index on `key` reject collisions inside the current transaction.
        await self.db.flush()

        return station

    async def delete(self, station: Station) -> None:
        await self.db.delete(station)
        await self.db.flush()

    async def list_stations(self, limit: Optional[int] = None, offset: int = 0) -> List[Station]:
        """
        List stations with pagination.

        Args:
            limit: Max items to return, or None for all of them.
            offset: Pagination offset.

        Returns:
            A list of Station models ordered by id.
        """
        stmt = select(Station).order_by(Station.id.asc()).limit(limit).offset(offset)
        res = await self.db.execute(stmt)
        return list(res.scalars().all())

    async def list_names(self) -> List[str]:
        stmt = select(Station.name).order_by(Station.name.asc())
        res = await self.db.execute(stmt)
        return list(res.scalars().all())
