from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.core.errors import ProviderError
from app.schemas.readings import CurrentWeather


class OpenMeteoClient:
    """
    Open-Meteo forecast client.

    Key endpoint used:
    - Current weather for a coordinate pair:
      /v1/forecast?latitude={lat}&longitude={lon}&current_weather=true&timezone={tz}

    No API key is required.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timezone: str | None = None,
        timeout_s: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.open_meteo_base_url).rstrip("/")
        self.timezone = timezone or settings.open_meteo_timezone
        self.timeout = timeout_s if timeout_s is not None else settings.http_timeout_seconds
        self.transport = transport

    async def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            r = await client.get(url, params=params, headers={"accept": "application/json"})
            r.raise_for_status()
            return r.json()

    async def current_weather(self, latitude: float, longitude: float) -> CurrentWeather:
        """
        Fetch the current temperature and its observation time.

        Raises:
            httpx.HTTPStatusError: the API answered with an error status
                (e.g. coordinates it does not accept).
            ProviderError: the payload has no usable `current_weather`.
        """
        data = await self._get_json(
            f"{self.base_url}/v1/forecast",
            params={
                "latitude": latitude,
                "longitude": longitude,
                "current_weather": "true",
                "timezone": self.timezone,
            },
        )

        # Typical: {"latitude": 42.3, ..., "current_weather": {"temperature": 3.1, "time": "2024-01-01T12:00", ...}}
        payload = data.get("current_weather") if isinstance(data, dict) else None
        if not isinstance(payload, dict):
            raise ProviderError("Open-Meteo response has no current_weather block")

        try:
            return CurrentWeather.model_validate(payload)
        except ValidationError as e:
            raise ProviderError(f"Malformed current_weather block: {payload!r}") from e
