from app.models.base import Base
from app.models.station import Station, derive_key
from app.models.reading import Reading

__all__ = ["Base", "Station", "Reading", "derive_key"]
