from __future__ import annotations

from datetime import datetime
from decimal import Decimal
import re

from pydantic import BaseModel, Field, field_validator, model_validator

from classboom.models.resource import RESOURCE_FEATURES, ResourceType

# Feature values are a closed sum: flag, count or free text.
FeatureValue = bool | int | float | str

CLOCK_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")

OPTIONAL_TEXT_FIELDS = (
    "code",
    "description",
    "building",
    "floor",
    "room_number",
    "address",
    "platform",
    "account_email",
    "account_password_hint",
    "meeting_url",
    "meeting_id",
    "passcode",
    "available_from",
    "available_until",
    "currency",
    "image_url",
    "notes",
)


def validate_feature_keys(resource_type: ResourceType, features: dict[str, FeatureValue]) -> None:
    allowed = RESOURCE_FEATURES[resource_type]
    unknown = sorted(key for key in features if key not in allowed)
    if unknown:
        raise ValueError(
            f"Unknown feature(s) for {resource_type.value}: {', '.join(unknown)}"
        )


def _clock_seconds(value: str) -> int:
    parts = [int(part) for part in value.split(":")]
    return parts[0] * 3600 + parts[1] * 60 + (parts[2] if len(parts) > 2 else 0)


def validate_operating_window(available_from: str | None, available_until: str | None) -> None:
    if available_from and available_until and _clock_seconds(available_until) <= _clock_seconds(available_from):
        raise ValueError("available_until must be after available_from")


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ResourceFields(BaseModel):
    code: str | None = Field(default=None, max_length=50)
    description: str | None = None
    building: str | None = Field(default=None, max_length=200)
    floor: str | None = Field(default=None, max_length=50)
    room_number: str | None = Field(default=None, max_length=50)
    address: str | None = None
    platform: str | None = Field(default=None, max_length=50)
    account_email: str | None = Field(default=None, max_length=255)
    account_password_hint: str | None = Field(default=None, max_length=255)
    meeting_url: str | None = Field(default=None, max_length=500)
    meeting_id: str | None = Field(default=None, max_length=100)
    passcode: str | None = Field(default=None, max_length=100)
    license_limit: int | None = Field(default=None, ge=1)
    available_from: str | None = None
    available_until: str | None = None
    days_available: list[int] | None = None
    requires_approval: bool = False
    approval_roles: list[str] | None = None
    hourly_rate: Decimal | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, max_length=3)
    image_url: str | None = Field(default=None, max_length=500)
    notes: str | None = None

    @field_validator(*OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def empty_string_is_absent(cls, value):
        return _blank_to_none(value)

    @field_validator("available_from", "available_until")
    @classmethod
    def validate_clock(cls, value: str | None) -> str | None:
        if value is not None and not CLOCK_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM or HH:MM:SS 24-hour format")
        return value

    @field_validator("days_available")
    @classmethod
    def validate_days(cls, value: list[int] | None) -> list[int] | None:
        if value is None:
            return None
        if any(day < 1 or day > 7 for day in value):
            raise ValueError("days_available uses 1=Monday .. 7=Sunday")
        return sorted(set(value))


class ResourceCreate(ResourceFields):
    resource_type: ResourceType
    name: str = Field(min_length=1, max_length=200)
    capacity: int = Field(default=1, ge=1)
    features: dict[str, FeatureValue] = Field(default_factory=dict)
    is_active: bool = True
    min_booking_duration: int = Field(default=30, ge=1)
    max_booking_duration: int = Field(default=480, ge=1)
    buffer_time_before: int = Field(default=0, ge=0)
    buffer_time_after: int = Field(default=15, ge=0)
    advance_booking_days: int = Field(default=90, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("name is required")
        return name

    @model_validator(mode="after")
    def validate_rules(self) -> "ResourceCreate":
        if self.min_booking_duration > self.max_booking_duration:
            raise ValueError("min_booking_duration cannot exceed max_booking_duration")
        validate_feature_keys(self.resource_type, self.features)
        validate_operating_window(self.available_from, self.available_until)
        return self


class ResourceUpdate(ResourceFields):
    resource_type: ResourceType | None = None
    name: str | None = Field(default=None, min_length=1, max_length=200)
    capacity: int | None = Field(default=None, ge=1)
    features: dict[str, FeatureValue] | None = None
    is_active: bool | None = None
    requires_approval: bool | None = None
    min_booking_duration: int | None = Field(default=None, ge=1)
    max_booking_duration: int | None = Field(default=None, ge=1)
    buffer_time_before: int | None = Field(default=None, ge=0)
    buffer_time_after: int | None = Field(default=None, ge=0)
    advance_booking_days: int | None = Field(default=None, ge=0)


class ResourceOut(BaseModel):
    id: str
    school_id: str
    resource_type: ResourceType
    name: str
    code: str | None
    description: str | None
    building: str | None
    floor: str | None
    room_number: str | None
    address: str | None
    capacity: int
    features: dict[str, FeatureValue]
    platform: str | None
    meeting_url: str | None
    meeting_id: str | None
    license_limit: int | None
    is_active: bool
    available_from: str | None
    available_until: str | None
    days_available: list[int] | None
    min_booking_duration: int
    max_booking_duration: int
    buffer_time_before: int
    buffer_time_after: int
    advance_booking_days: int
    requires_approval: bool
    hourly_rate: Decimal | None
    currency: str | None
    image_url: str | None
    notes: str | None

    model_config = {"from_attributes": True}


class ResourceFilters(BaseModel):
    resource_type: ResourceType | None = None
    is_active: bool | None = None
    building: str | None = None
    capacity_min: int | None = Field(default=None, ge=1)
    capacity_max: int | None = Field(default=None, ge=1)
    features: list[str] = Field(default_factory=list)
    search: str | None = None


class AvailabilityCheck(BaseModel):
    start_datetime: datetime
    end_datetime: datetime
    exclude_booking_id: str | None = None

    @model_validator(mode="after")
    def validate_order(self) -> "AvailabilityCheck":
        if self.end_datetime <= self.start_datetime:
            raise ValueError("end_datetime must be after start_datetime")
        return self


class ConflictDescriptor(BaseModel):
    id: str | None = None
    start: datetime | None = None
    end: datetime | None = None
    session_id: str | None = None
    booked_for: str | None = None
    reason: str


class AvailabilityResult(BaseModel):
    is_available: bool
    conflicting_bookings: list[ConflictDescriptor] = Field(default_factory=list)


class ResourceStats(BaseModel):
    total_resources: int
    by_type: dict[str, int]
    active_resources: int
    total_capacity: int
    upcoming_bookings: int


class ResourceWithAvailability(ResourceOut):
    is_available_now: bool
    current_booking_id: str | None = None
    next_available: datetime | None = None


class ResourceSetCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    resource_ids: list[str] = Field(min_length=1)


class ResourceSetOut(BaseModel):
    id: str
    name: str
    description: str | None
    resource_ids: list[str]
    is_active: bool
    resources: list[ResourceOut] = Field(default_factory=list)
