"""Utility functions for handling enum/string values safely."""
from enum import Enum
from typing import Type, TypeVar

from fastapi import HTTPException, status

E = TypeVar("E", bound=Enum)


def enum_to_str(v):
    """
    Safely convert enum or string value to string.

    Examples:
        >>> enum_to_str(LeaderboardPeriod.WEEKLY)
        'WEEKLY'
        >>> enum_to_str('WEEKLY')
        'WEEKLY'
        >>> enum_to_str(None)
        None
    """
    if v is None:
        return None
    if isinstance(v, Enum):
        return v.value
    return str(v)


def parse_enum(enum_cls: Type[E], v, field: str = "value") -> E:
    """
    Coerce an enum member or its (case-insensitive) string value.

    Raises:
        HTTPException 400 if the value is not a member
    """
    if isinstance(v, enum_cls):
        return v
    try:
        return enum_cls(str(v).upper())
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {field}: {v!r}. Must be one of {allowed}",
        )
