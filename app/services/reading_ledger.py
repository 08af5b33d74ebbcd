from __future__ import annotations

import logging
from typing import AsyncIterator, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import NotFound, ReferentialViolation, from_integrity_error
from app.models.reading import Reading
from app.repositories.reading_repository import ReadingRepository
from app.repositories.station_repository import StationRepository
from app.schemas.readings import ReadingOut
from app.services.station_registry import StationRegistry

logger = logging.getLogger(__name__)


class ReadingSequence:
    """
    A station's readings in ascending time order.

    Nothing is queried until the sequence is iterated, and every iteration
    runs a fresh query, so the same object can be consumed repeatedly and
    always reflects the current state of the store.

    Usage example:
    ```python
    async for reading in ledger.readings_for_station(station_id):
        ...
    readings = await ledger.readings_for_station(station_id).all()
    ```
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], station_id: int):
        self._session_factory = session_factory
        self.station_id = station_id

    def __aiter__(self) -> AsyncIterator[ReadingOut]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ReadingOut]:
        for reading in await self.all():
            yield reading

    async def all(self) -> List[ReadingOut]:
        async with self._session_factory() as db:
            rows = await ReadingRepository(db).list_by_station(self.station_id)
        return [ReadingOut.model_validate(r) for r in rows]


class ReadingLedger:
    """
    Owns readings: insertion, removal and the ordered per-station view.

    The ledger subscribes to the registry so that deleting a station
    removes its readings in the same transaction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        registry: StationRegistry,
    ):
        self.session_factory = session_factory
        self.registry = registry
        registry.register_cascade(self.cascade_delete)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_reading(self, station_id: int, temperature: float, time: str) -> int:
        """
        Record a reading for an existing station and return its id.

        Raises:
            RangeViolation: temperature outside [-100, 70].
            InvalidValue: empty or overlong time, non-numeric temperature.
            ReferentialViolation: the station does not exist (a `NotFound`).
            UniquenessViolation: the station already has a reading at `time`.
        """
        reading = Reading(station_id=station_id, temperature=temperature, time=time)

        try:
            async with self.session_factory() as db, db.begin():
                # The shared lock keeps the station from being deleted
                # until this insert commits; the foreign key is the
                # backstop where row locks are unavailable.
                station = await StationRepository(db).get_by_id(station_id, lock="share")
                if station is None:
                    raise ReferentialViolation("Station", station_id)
                await ReadingRepository(db).add(reading)
        except IntegrityError as e:
            raise from_integrity_error(
                e,
                f"Station {station_id} already has a reading at {time!r}",
                station_id=station_id,
            ) from e

        logger.debug("Reading %s added for station %s at %s", reading.id, station_id, time)
        return reading.id

    async def update_reading(
        self,
        reading_id: int,
        temperature: Optional[float] = None,
        time: Optional[str] = None,
    ) -> None:
        """
        Change a reading's temperature or time, re-running the same range
        and exclusivity checks as insertion.
        """
        try:
            async with self.session_factory() as db, db.begin():
                reading = await ReadingRepository(db).get_by_id(reading_id)
                if reading is None:
                    raise NotFound("Reading", reading_id)
                if temperature is not None:
                    reading.temperature = temperature
                if time is not None:
                    reading.time = time
                station_id, new_time = reading.station_id, reading.time
                await db.flush()
        except IntegrityError as e:
            raise from_integrity_error(
                e,
                f"Station {station_id} already has a reading at {new_time!r}",
                station_id=station_id,
            ) from e

    async def remove_reading(self, reading_id: int) -> None:
        async with self.session_factory() as db, db.begin():
            repo = ReadingRepository(db)
            reading = await repo.get_by_id(reading_id)
            if reading is None:
                raise NotFound("Reading", reading_id)
            await repo.delete(reading)

    async def cascade_delete(self, station_id: int, db: Optional[AsyncSession] = None) -> int:
        """
        Delete every reading owned by `station_id`.

        Args:
            station_id: Owning station.
            db: Session of an enclosing unit of work. When given, the
                delete joins that transaction and is committed or rolled
                back with it; otherwise it runs in its own.

        Returns:
            Number of readings removed. Zero is not an error.
        """
        if db is not None:
            return await ReadingRepository(db).delete_by_station(station_id)

        async with self.session_factory() as own_db, own_db.begin():
            return await ReadingRepository(own_db).delete_by_station(station_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(self, reading_id: int) -> Optional[ReadingOut]:
        async with self.session_factory() as db:
            reading = await ReadingRepository(db).get_by_id(reading_id)
        return ReadingOut.model_validate(reading) if reading else None

    def readings_for_station(self, station_id: int) -> ReadingSequence:
        """
        Return the station's readings ordered by ascending time.

        An unknown station and a station without readings both produce an
        empty sequence.
        """
        return ReadingSequence(self.session_factory, station_id)
