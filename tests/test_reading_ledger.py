from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio

from app.core.errors import (
    InvalidValue,
    NotFound,
    RangeViolation,
    ReferentialViolation,
    UniquenessViolation,
)
from app.models.reading import Reading
from app.repositories.station_repository import StationRepository


@pytest_asyncio.fixture
async def berlin(registry):
    return await registry.create_station("Berlin", 52.5, 13.4)


async def _times(ledger, station_id):
    return [r.time for r in await ledger.readings_for_station(station_id).all()]


@pytest.mark.asyncio
async def test_add_reading_for_missing_station(ledger):
    with pytest.raises(NotFound) as exc_info:
        await ledger.add_reading(12345, 20.0, "t1")

    assert isinstance(exc_info.value, ReferentialViolation)


@pytest.mark.asyncio
async def test_duplicate_time_for_station_is_rejected(ledger, berlin):
    await ledger.add_reading(berlin, 20.0, "t1")

    with pytest.raises(UniquenessViolation):
        await ledger.add_reading(berlin, 25.0, "t1")

    readings = await ledger.readings_for_station(berlin).all()
    assert [(r.time, r.temperature) for r in readings] == [("t1", 20.0)]


@pytest.mark.asyncio
async def test_same_time_at_different_stations(registry, ledger, berlin):
    paris = await registry.create_station("Paris", 48.85, 2.35)

    await ledger.add_reading(berlin, 20.0, "t1")
    await ledger.add_reading(paris, 21.0, "t1")

    assert await _times(ledger, berlin) == ["t1"]
    assert await _times(ledger, paris) == ["t1"]


@pytest.mark.asyncio
@pytest.mark.parametrize("temperature", [-100.0, 0.0, 70.0])
async def test_temperature_bounds_are_inclusive(ledger, berlin, temperature):
    reading_id = await ledger.add_reading(berlin, temperature, "t1")

    reading = await ledger.get(reading_id)
    assert reading.temperature == temperature


@pytest.mark.asyncio
@pytest.mark.parametrize("temperature", [-100.1, 70.5, 1000.0])
async def test_temperature_out_of_range(ledger, berlin, temperature):
    with pytest.raises(RangeViolation):
        await ledger.add_reading(berlin, temperature, "t1")

    assert await _times(ledger, berlin) == []


@pytest.mark.asyncio
async def test_range_is_checked_before_station_lookup(ledger):
    with pytest.raises(RangeViolation):
        await ledger.add_reading(12345, 200.0, "t1")


@pytest.mark.asyncio
async def test_empty_time_is_rejected(ledger, berlin):
    with pytest.raises(InvalidValue):
        await ledger.add_reading(berlin, 10.0, "")


@pytest.mark.asyncio
async def test_readings_are_ordered_by_time(ledger, berlin):
    for time in ("t3", "t1", "t2"):
        await ledger.add_reading(berlin, 10.0, time)

    assert await _times(ledger, berlin) == ["t1", "t2", "t3"]


@pytest.mark.asyncio
async def test_iso_timestamps_order_chronologically(ledger, berlin):
    for time in ("2024-01-02T00:00", "2023-12-31T23:45", "2024-01-01T12:00"):
        await ledger.add_reading(berlin, 10.0, time)

    assert await _times(ledger, berlin) == [
        "2023-12-31T23:45",
        "2024-01-01T12:00",
        "2024-01-02T00:00",
    ]


@pytest.mark.asyncio
async def test_readings_sequence_is_lazy_and_restartable(ledger, berlin):
    readings = ledger.readings_for_station(berlin)
    await ledger.add_reading(berlin, 10.0, "t2")

    first = [r.time async for r in readings]
    await ledger.add_reading(berlin, 11.0, "t1")
    second = [r.time async for r in readings]

    assert first == ["t2"]
    assert second == ["t1", "t2"]


@pytest.mark.asyncio
async def test_readings_for_unknown_station_is_empty(ledger):
    assert await ledger.readings_for_station(999).all() == []


@pytest.mark.asyncio
async def test_delete_station_cascades_to_its_readings_only(registry, ledger, berlin):
    paris = await registry.create_station("Paris", 48.85, 2.35)
    for time in ("t1", "t2", "t3"):
        await ledger.add_reading(berlin, 10.0, time)
    for time in ("t1", "t2"):
        await ledger.add_reading(paris, 15.0, time)

    removed = await registry.delete_station(berlin)

    assert removed == 3
    assert await ledger.readings_for_station(berlin).all() == []
    assert await _times(ledger, paris) == ["t1", "t2"]


@pytest.mark.asyncio
async def test_cascade_delete_is_idempotent(ledger, berlin):
    await ledger.add_reading(berlin, 10.0, "t1")
    await ledger.add_reading(berlin, 11.0, "t2")

    assert await ledger.cascade_delete(berlin) == 2
    assert await ledger.cascade_delete(berlin) == 0
    assert await ledger.cascade_delete(999) == 0


@pytest.mark.asyncio
async def test_failed_station_delete_keeps_its_readings(registry, ledger, berlin):
    """
    The cascade and the station delete commit together or not at all.
    """
    for time in ("t1", "t2", "t3"):
        await ledger.add_reading(berlin, 10.0, time)

    with patch.object(StationRepository, "delete", AsyncMock(side_effect=RuntimeError("db went away"))):
        with pytest.raises(RuntimeError):
            await registry.delete_station(berlin)

    assert await registry.get(berlin) is not None
    assert await _times(ledger, berlin) == ["t1", "t2", "t3"]


@pytest.mark.asyncio
async def test_exclusivity_is_enforced_at_write_time(session_factory, ledger, berlin):
    """
    A competing writer commits the same (time, station) between the
    ledger's station check and its insert. The stale check must not let
    the second row through.
    """
    original_get_by_id = StationRepository.get_by_id

    async def get_then_race(self, station_id, lock=None):
        station = await original_get_by_id(self, station_id, lock=lock)
        async with session_factory() as other, other.begin():
            other.add(Reading(station_id=station_id, temperature=10.0, time="t1"))
        return station

    with patch.object(StationRepository, "get_by_id", get_then_race):
        with pytest.raises(UniquenessViolation):
            await ledger.add_reading(berlin, 20.0, "t1")

    readings = await ledger.readings_for_station(berlin).all()
    assert [(r.time, r.temperature) for r in readings] == [("t1", 10.0)]


@pytest.mark.asyncio
async def test_remove_reading(registry, ledger, berlin):
    keep = await ledger.add_reading(berlin, 10.0, "t1")
    drop = await ledger.add_reading(berlin, 11.0, "t2")

    await ledger.remove_reading(drop)

    assert await ledger.get(drop) is None
    assert (await ledger.get(keep)).time == "t1"
    assert await registry.get(berlin) is not None

    with pytest.raises(NotFound):
        await ledger.remove_reading(drop)


@pytest.mark.asyncio
async def test_update_reading_rechecks_constraints(ledger, berlin):
    await ledger.add_reading(berlin, 10.0, "t1")
    reading_id = await ledger.add_reading(berlin, 11.0, "t2")

    with pytest.raises(UniquenessViolation):
        await ledger.update_reading(reading_id, time="t1")
    with pytest.raises(RangeViolation):
        await ledger.update_reading(reading_id, temperature=71.0)

    reading = await ledger.get(reading_id)
    assert (reading.time, reading.temperature) == ("t2", 11.0)

    await ledger.update_reading(reading_id, temperature=-5.0, time="t0")
    assert await _times(ledger, berlin) == ["t0", "t1"]


@pytest.mark.asyncio
async def test_update_missing_reading(ledger):
    with pytest.raises(NotFound):
        await ledger.update_reading(999, temperature=1.0)


@pytest.mark.asyncio
async def test_overlong_time_is_rejected(ledger, berlin):
    with pytest.raises(InvalidValue):
        await ledger.add_reading(berlin, 10.0, "t" * 65)

    reading_id = await ledger.add_reading(berlin, 10.0, "t1")
    with pytest.raises(InvalidValue):
        await ledger.update_reading(reading_id, time="t" * 65)

    assert await _times(ledger, berlin) == ["t1"]
