from sqlalchemy import CheckConstraint, Float, Integer, String, UniqueConstraint, event
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.models.base import Base, check_range, check_text

NAME_MAX_LENGTH = 256
LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


def derive_key(name: str, latitude: float, longitude: float) -> str:
    """
    Compute the canonical station key.

    The key is the name followed by the latitude and longitude cast to
    integers. The cast truncates toward zero, so `-0.7` contributes `0`
    and `-78.5` contributes `-78`.

    Example:
        >>> derive_key("Berlin", 52.5, 13.4)
        'Berlin5213'
    """
    return f"{name}{int(latitude)}{int(longitude)}"


class Station(Base):
    """
    Weather station entity (a "City").

    A named geographic point. Each station is uniquely identified by its
    derived `key`, which is never set directly: it is recomputed from
    `name`, `latitude` and `longitude` whenever the row is inserted or
    updated, and the unique index on it is the uniqueness guarantee.
    """

    __tablename__ = "stations"

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Internal unique identifier for the station",
    )

    name: Mapped[str] = mapped_column(
        String(NAME_MAX_LENGTH),
        nullable=False,
        comment="Human-readable station name",
    )

    latitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Latitude in degrees, [-90, 90]",
    )

    longitude: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Longitude in degrees, [-180, 180]",
    )

    key: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        comment="Derived identity: name + int(latitude) + int(longitude)",
    )

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    # Readings are removed by the ledger cascade and by the FK's
    # ON DELETE CASCADE; the ORM never loads them just to delete them.
    conditions = relationship(
        "Reading",
        back_populates="station",
        order_by="Reading.time",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    __table_args__ = (
        UniqueConstraint("key", name="uq_station_key"),
        CheckConstraint(
            "latitude BETWEEN -90.0 AND 90.0",
            name="ck_station_latitude_range",
        ),
        CheckConstraint(
            "longitude BETWEEN -180.0 AND 180.0",
            name="ck_station_longitude_range",
        ),
    )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @validates("name")
    def _validate_name(self, _, value: str) -> str:
        return check_text("name", value, NAME_MAX_LENGTH)

    @validates("latitude")
    def _validate_latitude(self, _, value: float) -> float:
        return check_range("latitude", value, *LATITUDE_RANGE)

    @validates("longitude")
    def _validate_longitude(self, _, value: float) -> float:
        return check_range("longitude", value, *LONGITUDE_RANGE)

    def __repr__(self) -> str:
        return f"Station(id={self.id!r}, key={self.key!r})"


@event.listens_for(Station, "before_insert")
@event.listens_for(Station, "before_update")
def _refresh_key(mapper, connection, target: Station) -> None:
    target.key = derive_key(target.name, target.latitude, target.longitude)
