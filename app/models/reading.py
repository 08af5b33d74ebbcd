from sqlalchemy import CheckConstraint, Float, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from app.models.base import Base, check_range, check_text

TEMPERATURE_RANGE = (-100.0, 70.0)
TIME_MAX_LENGTH = 64


class Reading(Base):
    """
    Weather reading entity (a station's "Conditions").

    Represents a single temperature observation recorded at a station and
    timestamp. A reading never outlives its station: the foreign key
    cascades on delete, and a station cannot hold two readings with the
    same `time`.
    """

    __tablename__ = "conditions"

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Internal unique identifier for the reading",
    )

    station_id: Mapped[int] = mapped_column(
        ForeignKey("stations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Reference to the station that owns this reading",
    )

    temperature: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment="Temperature in degrees Celsius, [-100, 70]",
    )

    time: Mapped[str] = mapped_column(
        String(TIME_MAX_LENGTH),
        nullable=False,
        comment="Observation timestamp token as reported by the provider",
    )

    # ------------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------------

    station = relationship(
        "Station",
        back_populates="conditions",
    )

    # ------------------------------------------------------------------
    # Constraints
    # ------------------------------------------------------------------

    __table_args__ = (
        UniqueConstraint(
            "time",
            "station_id",
            name="uq_conditions_time_station",
        ),
        CheckConstraint(
            "temperature BETWEEN -100.0 AND 70.0",
            name="ck_conditions_temperature_range",
        ),
    )

    @validates("temperature")
    def _validate_temperature(self, _, value: float) -> float:
        return check_range("temperature", value, *TEMPERATURE_RANGE)

    @validates("time")
    def _validate_time(self, _, value: str) -> str:
        return check_text("time", value, TIME_MAX_LENGTH)

    def __repr__(self) -> str:
        return f"Reading(id={self.id!r}, station_id={self.station_id!r}, time={self.time!r})"
