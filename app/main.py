import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.init_db import init_db
from app.core.logger import setup_logging
from app.services.conditions_service import ConditionsService
from app.services.providers.open_meteo_client import OpenMeteoClient
from app.services.reading_ledger import ReadingLedger
from app.services.station_registry import StationRegistry

logger = logging.getLogger(__name__)


@dataclass
class WeatherStore:
    """
    The wired-up store: registry, ledger and the conditions service
    sharing one session factory.
    """

    registry: StationRegistry
    ledger: ReadingLedger
    conditions: ConditionsService


def create_store(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    client: Optional[OpenMeteoClient] = None,
) -> WeatherStore:
    """
    Create and wire the store components.

    This factory function:
    - Builds the station registry on the given session factory.
    - Builds the reading ledger, which subscribes to station deletions.
    - Builds the conditions service on top of both.

    Args:
        session_factory: Defaults to the application's `AsyncSessionLocal`.
        client: Weather provider client. Defaults to `OpenMeteoClient()`.

    Returns:
        Configured `WeatherStore` instance.
    """
    if session_factory is None:
        from app.core.db import AsyncSessionLocal as session_factory

    registry = StationRegistry(session_factory)
    ledger = ReadingLedger(session_factory, registry)
    conditions = ConditionsService(registry, ledger, client=client)
    return WeatherStore(registry=registry, ledger=ledger, conditions=conditions)


async def bootstrap(store: WeatherStore, bind: Optional[AsyncEngine] = None) -> None:
    """
    Prepare a store for use.

    - Initializes the database schema (development/MVP setup).
    - Seeds the default stations.
    """
    await init_db(bind)
    seeded = await store.conditions.seed_default_stations()
    logger.info(
        "%s ready (%s): %d stations seeded, %d already present",
        settings.app_name,
        settings.environment,
        len(seeded.inserted),
        len(seeded.existing),
    )


async def main() -> None:
    """Bootstrap the store and run one conditions update pass."""
    setup_logging()
    store = create_store()
    await bootstrap(store)
    result = await store.conditions.update_conditions()
    logger.info(
        "Conditions updated: %d inserted, %d already present, %d failures",
        result.readings_inserted,
        result.readings_already_present,
        len(result.failures),
    )


if __name__ == "__main__":
    asyncio.run(main())
