from typing import Any, Optional


class StoreError(Exception):
    """
    Base class for every integrity error raised by the weather store.

    All violations are reported synchronously to the caller of the
    mutating operation; none are retried automatically.
    """


class InvalidValue(StoreError, ValueError):
    """A field value that can never be stored (e.g. an empty name)."""

    def __init__(self, field: str, value: Any, message: Optional[str] = None):
        self.field = field
        self.value = value
        super().__init__(message or f"Invalid value for {field}: {value!r}")


class RangeViolation(InvalidValue):
    """A scalar value outside its declared bounds."""

    def __init__(self, field: str, value: Any, lower: float, upper: float):
        self.lower = lower
        self.upper = upper
        super().__init__(
            field,
            value,
            f"{field}={value!r} is outside the allowed range [{lower}, {upper}]",
        )


class UniquenessViolation(StoreError):
    """A derived key or composite key that is already taken."""

    def __init__(self, message: str, constraint: Optional[str] = None):
        self.constraint = constraint
        super().__init__(message)


class NotFound(StoreError, LookupError):
    """Reference to a station or reading identity that does not exist."""

    def __init__(self, entity: str, identity: Any):
        self.entity = entity
        self.identity = identity
        super().__init__(f"{entity} {identity!r} not found")


class ReferentialViolation(NotFound):
    """A reading naming a station that does not exist."""


class ProviderError(Exception):
    """The external weather provider returned an unusable payload."""


def from_integrity_error(
    exc: Exception,
    message: str,
    station_id: Any = None,
) -> StoreError:
    """
    Translate a database integrity error into the store's taxonomy.

    Foreign key failures mean the owning station vanished and map to
    `ReferentialViolation`. Check constraint failures map to
    `InvalidValue`. Every other integrity failure raised by the store's
    tables comes from a unique index.
    """
    detail = str(getattr(exc, "orig", exc)).lower()
    if "foreign key" in detail:
        return ReferentialViolation("Station", station_id)
    if "check constraint" in detail:
        return InvalidValue("row", None, f"{message}: {detail}")
    return UniquenessViolation(message, constraint=_constraint_name(detail))


def _constraint_name(detail: str) -> Optional[str]:
    for name in ("uq_station_key", "uq_conditions_time_station"):
        if name in detail:
            return name
    # SQLite reports the columns instead of the constraint name
    if "stations.key" in detail:
        return "uq_station_key"
    if "conditions.time" in detail:
        return "uq_conditions_time_station"
    return None
