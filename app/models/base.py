from sqlalchemy.orm import DeclarativeBase

from app.core.errors import InvalidValue, RangeViolation


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All ORM models in the application must inherit from this base class
    in order to:
    - Be registered in the SQLAlchemy metadata
    - Be automatically created when initializing the database
    - Participate in migrations and schema management
    """
    pass


def check_range(field: str, value: float, lower: float, upper: float) -> float:
    """
    Return `value` as a float if it lies in the closed interval
    `[lower, upper]`, otherwise raise `RangeViolation`.

    NaN compares false against both bounds and is therefore rejected.
    """
    if value is None:
        raise InvalidValue(field, value, f"{field} is required")
    # bool is an int subclass; numeric strings are not numbers
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidValue(field, value, f"{field} must be a number")
    number = float(value)
    if not lower <= number <= upper:
        raise RangeViolation(field, value, lower, upper)
    return number


def check_text(field: str, value: str, max_length: int) -> str:
    """
    Return `value` if it is a non-empty string of at most `max_length`
    characters, otherwise raise `InvalidValue`.
    """
    if not isinstance(value, str) or not value:
        raise InvalidValue(field, value, f"{field} must be a non-empty string")
    if len(value) > max_length:
        raise InvalidValue(
            field,
            value,
            f"{field} is {len(value)} characters long, at most {max_length} are allowed",
        )
    return value
