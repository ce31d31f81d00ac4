"""
Database models for hutwatch.
"""

from hutwatch.models.available_date import AvailableDate
from hutwatch.models.base import Base, TimestampMixin
from hutwatch.models.property import Property
from hutwatch.models.room_type import RoomType

__all__ = [
    "Base",
    "TimestampMixin",
    "Property",
    "RoomType",
    "AvailableDate",
]
