"""
Room type model: a sub-resource of a property (bed category, dormitory, room).
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hutwatch.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from hutwatch.models.available_date import AvailableDate
    from hutwatch.models.property import Property


class RoomType(Base, TimestampMixin):
    __tablename__ = "room_types"
    __table_args__ = (
        UniqueConstraint("property_id", "external_id", name="uq_room_type_property_external_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    external_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, comment="Identifier of the room type in the booking system"
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    property: Mapped["Property"] = relationship("Property", back_populates="room_types")
    available_dates: Mapped[List["AvailableDate"]] = relationship(
        "AvailableDate", back_populates="room_type", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<RoomType(id={self.id}, property_id={self.property_id}, name='{self.name}')>"
