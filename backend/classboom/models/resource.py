import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from classboom.db.base import Base


class ResourceType(str, Enum):
    physical_room = "physical_room"
    online_meeting = "online_meeting"
    equipment = "equipment"
    vehicle = "vehicle"
    sports_facility = "sports_facility"
    instrument = "instrument"
    software_license = "software_license"


class Resource(Base):
    __tablename__ = "resources"
    __table_args__ = (
        CheckConstraint("capacity >= 1", name="ck_resources_capacity_positive"),
        CheckConstraint(
            "min_booking_duration <= max_booking_duration",
            name="ck_resources_booking_duration_order",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("schools.id", ondelete="CASCADE"), index=True, nullable=False
    )
    resource_type: Mapped[ResourceType] = mapped_column(SAEnum(ResourceType, name="resource_type"), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50), index=True, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    building: Mapped[str | None] = mapped_column(String(200), nullable=True)
    floor: Mapped[str | None] = mapped_column(String(50), nullable=True)
    room_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    features: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    platform: Mapped[str | None] = mapped_column(String(50), nullable=True)
    account_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    account_password_hint: Mapped[str | None] = mapped_column(String(255), nullable=True)
    meeting_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    meeting_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    passcode: Mapped[str | None] = mapped_column(String(100), nullable=True)
    license_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    available_from: Mapped[str | None] = mapped_column(String(8), nullable=True)
    available_until: Mapped[str | None] = mapped_column(String(8), nullable=True)
    days_available: Mapped[list[int] | None] = mapped_column(JSON, nullable=True)

    min_booking_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    max_booking_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=480)
    buffer_time_before: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    buffer_time_after: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    advance_booking_days: Mapped[int] = mapped_column(Integer, nullable=False, default=90)

    requires_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approval_roles: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    bookings: Mapped[list["ResourceBooking"]] = relationship(  # noqa: F821
        back_populates="resource",
        cascade="all, delete-orphan",
    )


class ResourceSet(Base):
    __tablename__ = "resource_sets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("schools.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    resource_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())


RESOURCE_FEATURES: dict[ResourceType, frozenset[str]] = {
    ResourceType.physical_room: frozenset(
        {"projector", "whiteboard", "smart_board", "ac", "heating", "windows", "sound_system"}
    ),
    ResourceType.online_meeting: frozenset(
        {"screen_sharing", "recording", "breakout_rooms", "whiteboard", "polls"}
    ),
    ResourceType.equipment: frozenset({"portable", "requires_training", "consumable", "fragile"}),
    ResourceType.vehicle: frozenset({"seats", "ac", "gps", "first_aid_kit", "child_locks"}),
    ResourceType.sports_facility: frozenset(
        {"indoor", "outdoor", "lighting", "scoreboard", "seating", "locker_rooms"}
    ),
    ResourceType.instrument: frozenset({"tuned", "amplified", "portable", "beginner_friendly"}),
    ResourceType.software_license: frozenset({"multi_user", "cloud_based", "offline_capable", "mobile_app"}),
}
