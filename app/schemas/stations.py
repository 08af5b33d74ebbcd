from pydantic import BaseModel, ConfigDict, Field

from app.schemas.readings import ReadingOut


class StationOut(BaseModel):
    """
    Public representation of a stored weather station.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    latitude: float
    longitude: float
    key: str = Field(..., description="Derived identity: name + int(latitude) + int(longitude)")


class StationConditionsOut(StationOut):
    """
    A station together with its readings, ordered by ascending time.
    """

    conditions: list[ReadingOut] = Field(default_factory=list)
