from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.reading import Reading


class ReadingRepository:
    """
    Repository for managing reading persistence.

    This repository encapsulates all database operations related to
    `Reading` entities: insertion, removal, per-station bulk removal and
    retrieval of a station's readings over time.
    """

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with an active database session.

        Args:
            db: Asynchronous SQLAlchemy session.
        """
        self.db = db

    async def get_by_id(self, reading_id: int) -> Optional[Reading]:
        stmt = select(Reading).where(Reading.id == reading_id)
        res = await self.db.execute(stmt)
        return res.scalar_one_or_none()

    async def add(self, reading: Reading) -> Reading:
        """
        Stage a reading and flush it.

        The flush makes the `(time, station_id)` unique index and the
        station foreign key judge the row inside the current transaction.
        """
        self.db.add(reading)
        await self.db.flush()
        return reading

    async def delete(self, reading: Reading) -> None:
        await self.db.delete(reading)
        await self.db.flush()

    async def delete_by_station(self, station_id: int) -> int:
        """
        Delete every reading owned by a station.

        Args:
            station_id: Internal identifier of the owning station.

        Returns:
            Number of rows removed (zero is not an error).
        """
        stmt = (
            delete(Reading)
            .where(Reading.station_id == station_id)
            .execution_options(synchronize_session=False)
        )
        res = await self.db.execute(stmt)
        return res.rowcount or 0

    async def list_by_station(self, station_id: int) -> List[Reading]:
        """
        Retrieve all readings of a station ordered by ascending time.

        Ties cannot happen within one station; the id tie-breaker keeps
        the order total regardless of physical storage order.
        """
        stmt = (
            select(Reading)
            .where(Reading.station_id == station_id)
            .order_by(Reading.time.asc(), Reading.id.asc())
        )
        res = await self.db.execute(stmt)
        return list(res.scalars().all())
