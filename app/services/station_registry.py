from __future__ import annotations

import logging
from typing import Awaitable, List, Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.errors import NotFound, UniquenessViolation, from_integrity_error
from app.models.station import Station, derive_key
from app.repositories.station_repository import StationRepository
from app.schemas.stations import StationConditionsOut, StationOut

logger = logging.getLogger(__name__)


class CascadeHandler(Protocol):
    """
    Called inside the deleting transaction with the station id and that
    transaction's session; returns the number of dependent rows removed.
    """

    def __call__(self, station_id: int, db: AsyncSession) -> Awaitable[int]: ...


class StationRegistry:
    """
    Owns stations: creation, update, deletion and lookup by derived key.

    Every mutating operation runs in its own session and transaction. The
    uniqueness of `key` is decided by the database's unique index at flush
    time, so two writers racing for the same key cannot both commit.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._cascade_handlers: List[CascadeHandler] = []

    def register_cascade(self, handler: CascadeHandler) -> None:
        """
        Subscribe `handler` to station deletions.

        The handler runs inside the deleting transaction, before the
        station row itself is removed.
        """
        self._cascade_handlers.append(handler)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_station(self, name: str, latitude: float, longitude: float) -> int:
        """
        Insert a new station and return its id.

        Raises:
            InvalidValue: empty or overlong name, non-numeric coordinates.
            RangeViolation: latitude or longitude out of bounds.
            UniquenessViolation: another station already has the same key.
        """
        # Validators on the model reject bad values before any I/O.
        station = Station(name=name, latitude=latitude, longitude=longitude)
        key = derive_key(station.name, station.latitude, station.longitude)

        try:
            async with self.session_factory() as db, db.begin():
                await StationRepository(db).add(station)
        except IntegrityError as e:
            raise from_integrity_error(e, f"Station key {key!r} already exists") from e

        logger.info("Station %s created with key %s", station.id, station.key)
        return station.id

    async def update_station(
        self,
        station_id: int,
        name: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> None:
        """
        Change any of a station's source fields and recompute its key.

        A key that collides with the station's own current key is fine;
        a collision with a different station raises `UniquenessViolation`.
        """
        key = None
        try:
            async with self.session_factory() as db, db.begin():
                station = await StationRepository(db).get_by_id(station_id, lock="update")
                if station is None:
                    raise NotFound("Station", station_id)

                if name is not None:
                    station.name = name
                if latitude is not None:
                    station.latitude = latitude
                if longitude is not None:
                    station.longitude = longitude

                key = derive_key(station.name, station.latitude, station.longitude)
                await db.flush()
        except IntegrityError as e:
            raise from_integrity_error(e, f"Station key {key!r} already exists") from e

        logger.info("Station %s updated, key is now %s", station_id, key)

    async def delete_station(self, station_id: int) -> int:
        """
        Delete a station together with everything that depends on it.

        The cascade handlers and the station delete share one transaction:
        either the station and all of its readings are gone, or nothing
        changed.

        Returns:
            Number of dependent rows removed by the cascade.
        """
        async with self.session_factory() as db, db.begin():
            repo = StationRepository(db)
            station = await repo.get_by_id(station_id, lock="update")
            if station is None:
                raise NotFound("Station", station_id)

            removed = 0
            for handler in self._cascade_handlers:
                removed += await handler(station_id, db=db)

            await repo.delete(station)

        logger.info("Station %s deleted, %d readings cascaded", station_id, removed)
        return removed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(self, station_id: int) -> Optional[StationOut]:
        async with self.session_factory() as db:
            station = await StationRepository(db).get_by_id(station_id)
        return StationOut.model_validate(station) if station else None

    async def get_by_key(self, key: str) -> Optional[StationOut]:
        """
        Look a station up by its derived key, or return None.
        """
        async with self.session_factory() as db:
            station = await StationRepository(db).get_by_key(key)
        return StationOut.model_validate(station) if station else None

    async def get_by_name(self, name: str) -> StationOut:
        """
        Return the single station called `name`.

        Raises:
            NotFound: no station has that name.
            UniquenessViolation: several stations share the name.
        """
        async with self.session_factory() as db:
            stations = await StationRepository(db).find_by_name(name)
        if not stations:
            raise NotFound("Station", name)
        if len(stations) > 1:
            raise UniquenessViolation(
                f"{len(stations)} stations are named {name!r}; look them up by key"
            )
        return StationOut.model_validate(stations[0])

    async def describe(self, station_id: int) -> StationConditionsOut:
        """
        Return a station with its readings in ascending time order.
        """
        async with self.session_factory() as db:
            station = await StationRepository(db).get_with_conditions(station_id)
            if station is None:
                raise NotFound("Station", station_id)
            return StationConditionsOut.model_validate(station)

    async def list_stations(self, limit: Optional[int] = None, offset: int = 0) -> List[StationOut]:
        async with self.session_factory() as db:
            stations = await StationRepository(db).list_stations(limit=limit, offset=offset)
        return [StationOut.model_validate(x) for x in stations]

    async def station_names(self) -> List[str]:
        """All station names in alphabetical order."""
        async with self.session_factory() as db:
            return await StationRepository(db).list_names()
