from typing import Dict

from pydantic import BaseModel, Field


class SeedResult(BaseModel):
    """
    Outcome of inserting the default station set.
    """

    inserted: list[str] = Field(default_factory=list, description="Names of stations created.")
    existing: list[str] = Field(default_factory=list, description="Names already present (same key).")


class UpdateConditionsResult(BaseModel):
    """
    Response payload for one conditions update pass over all stations.
    """

    stations_processed: int = 0
    readings_inserted: int = 0
    readings_already_present: int = 0
    failures: Dict[str, str] = Field(
        default_factory=dict,
        description="Station name -> error message, for stations that could not be updated.",
    )
