import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from classboom.db.base import Base


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"


# Only these statuses occupy a resource.
BLOCKING_STATUSES = (BookingStatus.confirmed, BookingStatus.pending)


class ResourceBooking(Base):
    __tablename__ = "resource_bookings"
    __table_args__ = (
        CheckConstraint("start_datetime < end_datetime", name="ck_resource_bookings_interval"),
        Index("ix_resource_bookings_resource_window", "resource_id", "start_datetime", "end_datetime"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    resource_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("resources.id", ondelete="CASCADE"), index=True, nullable=False
    )
    session_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)

    start_datetime: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_datetime: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    booked_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    booked_for: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[BookingStatus] = mapped_column(
        SAEnum(BookingStatus, name="resource_booking_status"),
        nullable=False,
        default=BookingStatus.confirmed,
    )
    approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurrence_group_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)

    booking_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    resource: Mapped["Resource"] = relationship(back_populates="bookings")  # noqa: F821
