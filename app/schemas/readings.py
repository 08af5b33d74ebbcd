from pydantic import BaseModel, ConfigDict, Field


class ReadingOut(BaseModel):
    """
    Public representation of a single temperature reading.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    station_id: int
    temperature: float = Field(..., description="Temperature in degrees Celsius")
    time: str = Field(..., description="Observation timestamp token")


class CurrentWeather(BaseModel):
    """
    Current conditions as reported by the weather provider.
    """

    temperature: float
    time: str
