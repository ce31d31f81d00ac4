"""
Property model: a mountain hut or refuge.
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hutwatch.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from hutwatch.models.available_date import AvailableDate
    from hutwatch.models.room_type import RoomType


class Property(Base, TimestampMixin):
    """
    A bookable property, identified by the slug of its name.
    """

    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    location: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    booking_system: Mapped[Optional[str]] = mapped_column(
        String(50), nullable=True, comment="Provider type tag, e.g. 'hut-reservation'"
    )
    url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    room_types: Mapped[List["RoomType"]] = relationship(
        "RoomType", back_populates="property", cascade="all, delete-orphan"
    )
    available_dates: Mapped[List["AvailableDate"]] = relationship(
        "AvailableDate", back_populates="property", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, slug='{self.slug}', booking_system='{self.booking_system}')>"
