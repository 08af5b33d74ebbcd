from __future__ import annotations

import logging
from typing import Optional

import httpx

from app.core.errors import ProviderError, StoreError, UniquenessViolation
from app.schemas.conditions import SeedResult, UpdateConditionsResult
from app.schemas.stations import StationConditionsOut
from app.services.providers.open_meteo_client import OpenMeteoClient
from app.services.reading_ledger import ReadingLedger
from app.services.station_registry import StationRegistry

logger = logging.getLogger(__name__)


class ConditionsService:
    """
    Keeps stations supplied with current conditions from Open-Meteo.

    Each method is a one-shot pass; scheduling repeated passes is up to
    the caller.
    """

    DEFAULT_STATIONS = (
        ("Andorra la Vella", 42.3, 1.3),
        ("El Serrat", 42.37, 1.33),
        ("Encamp", 42.32, 1.35),
        ("Les Escaldes", 42.3, 1.32),
        ("Sant Julià de Lòria", 42.28, 1.29),
        ("Soldeu", 42.34, 1.4),
    )

    def __init__(
        self,
        registry: StationRegistry,
        ledger: ReadingLedger,
        client: Optional[OpenMeteoClient] = None,
    ):
        self.registry = registry
        self.ledger = ledger
        self.client = client or OpenMeteoClient()

    async def seed_default_stations(self) -> SeedResult:
        """
        Insert the default station set, skipping stations whose key is
        already taken. Safe to run on every start.
        """
        result = SeedResult()
        for name, latitude, longitude in self.DEFAULT_STATIONS:
            try:
                await self.registry.create_station(name, latitude, longitude)
            except UniquenessViolation:
                logger.info("Station %s already in db", name)
                result.existing.append(name)
                continue
            logger.info("Station %s inserted", name)
            result.inserted.append(name)
        return result

    async def update_conditions(self) -> UpdateConditionsResult:
        """
        Fetch current weather for every station and record it as a reading.

        A reading that already exists for the reported time is skipped
        without error. Any other failure is logged and reported per
        station; the pass continues with the next one.
        """
        result = UpdateConditionsResult()

        for station in await self.registry.list_stations():
            result.stations_processed += 1
            try:
                weather = await self.client.current_weather(station.latitude, station.longitude)
                await self.ledger.add_reading(station.id, weather.temperature, weather.time)
            except UniquenessViolation:
                result.readings_already_present += 1
                continue
            except (httpx.HTTPError, ProviderError, StoreError) as e:
                logger.warning("Could not update conditions for %s: %s", station.name, e)
                result.failures[station.name] = str(e)
                continue

            logger.info("Inserted new conditions for %s", station.name)
            result.readings_inserted += 1

        return result

    async def add_station_with_conditions(self, name: str, latitude: float, longitude: float) -> int:
        """
        Create a station only once the weather provider has accepted its
        coordinates, then record its first reading.

        Provider errors propagate and nothing is stored. If the station is
        created but its first reading cannot be stored, the station is kept
        and the failure is logged.

        Returns:
            The new station id.
        """
        weather = await self.client.current_weather(latitude, longitude)
        station_id = await self.registry.create_station(name, latitude, longitude)

        try:
            await self.ledger.add_reading(station_id, weather.temperature, weather.time)
        except StoreError as e:
            logger.warning("Inserted station %s but couldn't insert conditions: %s", name, e)

        return station_id

    async def conditions_for(self, name: str) -> StationConditionsOut:
        """
        Return the station called `name` with its readings in time order.

        Raises:
            NotFound: no station has that name.
        """
        station = await self.registry.get_by_name(name)
        return await self.registry.describe(station.id)

    async def remove_station(self, name: str) -> int:
        """
        Delete the station called `name` together with its readings.

        Returns:
            Number of readings removed with the station.

        Raises:
            NotFound: no station has that name.
            UniquenessViolation: several stations share the name.
        """
        station = await self.registry.get_by_name(name)
        removed = await self.registry.delete_station(station.id)
        logger.info("Station %s removed with %d readings", name, removed)
        return removed
