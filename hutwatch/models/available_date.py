"""
Available date model. Only bookable days are stored.
"""

from datetime import date as date_type
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from hutwatch.models.base import Base

if TYPE_CHECKING:
    from hutwatch.models.property import Property
    from hutwatch.models.room_type import RoomType


class AvailableDate(Base):
    """
    One bookable day of one room type.
    Note: Does not use TimestampMixin, rows are replaced on every scrape.
    """

    __tablename__ = "available_dates"
    __table_args__ = (
        UniqueConstraint("property_id", "room_type_id", "date", name="unique_available_room_date"),
        Index("idx_available_dates_property_date", "property_id", "date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    property_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False
    )
    room_type_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("room_types.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    can_checkin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_checkout: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    free_places: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    scraped_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    property: Mapped["Property"] = relationship("Property", back_populates="available_dates")
    room_type: Mapped["RoomType"] = relationship("RoomType", back_populates="available_dates")

    def __repr__(self) -> str:
        return f"<AvailableDate(room_type_id={self.room_type_id}, date={self.date})>"
