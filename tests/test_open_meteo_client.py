import httpx
import pytest

from app.core.errors import ProviderError
from app.services.providers.open_meteo_client import OpenMeteoClient


def _client(handler):
    return OpenMeteoClient(
        base_url="https://open-meteo.test/",
        timezone="CET",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_current_weather_parses_payload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={
                "latitude": 42.3,
                "longitude": 1.3,
                "current_weather": {
                    "temperature": 3.5,
                    "windspeed": 7.2,
                    "time": "2024-01-01T12:00",
                },
            },
        )

    weather = await _client(handler).current_weather(42.3, 1.3)

    assert weather.temperature == 3.5
    assert weather.time == "2024-01-01T12:00"
    assert seen["path"] == "/v1/forecast"
    assert seen["params"] == {
        "latitude": "42.3",
        "longitude": "1.3",
        "current_weather": "true",
        "timezone": "CET",
    }


@pytest.mark.asyncio
async def test_current_weather_http_error_propagates():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": True, "reason": "Latitude must be in range of -90 to 90°"})

    with pytest.raises(httpx.HTTPStatusError):
        await _client(handler).current_weather(95.0, 0.0)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"latitude": 42.3},
        {"current_weather": None},
        {"current_weather": {"temperature": "warm", "time": "2024-01-01T12:00"}},
        {"current_weather": {"temperature": 3.5}},
    ],
)
async def test_current_weather_malformed_payload(payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    with pytest.raises(ProviderError):
        await _client(handler).current_weather(42.3, 1.3)
