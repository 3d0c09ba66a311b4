from __future__ import annotations

import datetime as dt
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from classboom.models.booking import BookingStatus
from classboom.models.resource import ResourceType
from classboom.schemas.resource import ConflictDescriptor, ResourceOut
from classboom.services.availability import TIME_PATTERN, parse_time_to_minutes


class _Interval(BaseModel):
    start_datetime: datetime
    end_datetime: datetime

    @model_validator(mode="after")
    def validate_order(self):
        if self.end_datetime <= self.start_datetime:
            raise ValueError("end_datetime must be after start_datetime")
        return self


class BookingCreate(_Interval):
    resource_id: str
    session_id: str | None = None
    booked_for: str | None = Field(default=None, max_length=200)
    booking_notes: str | None = None
    priority: int = 0


class SessionBookingRequest(_Interval):
    session_id: str
    resource_ids: list[str] = Field(min_length=1)
    notes: str | None = None

    @field_validator("resource_ids")
    @classmethod
    def dedupe_resource_ids(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        ordered: list[str] = []
        for item in value:
            if item not in seen:
                seen.add(item)
                ordered.append(item)
        return ordered


class RecurrencePattern(BaseModel):
    start_date: date
    end_date: date
    days_of_week: list[int] = Field(min_length=1)
    start_time: str
    end_time: str

    @field_validator("days_of_week")
    @classmethod
    def validate_days(cls, value: list[int]) -> list[int]:
        if any(day < 1 or day > 7 for day in value):
            raise ValueError("days_of_week uses ISO numbering: 1=Monday .. 7=Sunday")
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_ranges(self) -> "RecurrencePattern":
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class RecurringBookingRequest(BaseModel):
    resource_id: str
    pattern: RecurrencePattern
    session_ids: list[str] | None = None


class BookingOut(BaseModel):
    id: str
    resource_id: str
    session_id: str | None
    start_datetime: datetime
    end_datetime: datetime
    booked_by: str | None
    booked_for: str | None
    status: BookingStatus
    priority: int
    is_recurring: bool
    recurrence_group_id: str | None
    booking_notes: str | None
    cancellation_reason: str | None

    model_config = {"from_attributes": True}


class SkippedDate(BaseModel):
    date: dt.date
    reason: str


class RecurringBookingResult(BaseModel):
    recurrence_group_id: str
    requested_count: int
    created: list[BookingOut]
    skipped: list[SkippedDate]


class CancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class CancelRecurringResult(BaseModel):
    recurrence_group_id: str
    cancelled_count: int


class TransferRequest(BaseModel):
    new_resource_id: str
    reason: str | None = Field(default=None, max_length=1000)


class BookingFilters(BaseModel):
    resource_id: str | None = None
    session_id: str | None = None
    status: BookingStatus | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    booked_by: str | None = None


class ResourceConflictOut(BaseModel):
    resource_id: str
    resource_name: str
    conflict_type: str
    message: str
    conflicts: list[ConflictDescriptor] = Field(default_factory=list)


class MultiResourceCheck(_Interval):
    resource_ids: list[str] = Field(min_length=1)
    exclude_booking_ids: list[str] = Field(default_factory=list)


class ResourceRequirements(_Interval):
    resource_type: ResourceType
    capacity_needed: int = Field(default=1, ge=1)
    features_required: list[str] = Field(default_factory=list)
    preferred_building: str | None = None


class SmartAssignmentRequest(_Interval):
    capacity: int = Field(default=1, ge=1)
    is_online: bool = False
    course_category: str | None = None
    preferred_resources: list[str] = Field(default_factory=list)
    features_required: dict[str, list[str]] = Field(default_factory=dict)


class SmartAssignmentResult(BaseModel):
    required_types: list[ResourceType]
    resources: list[ResourceOut]
    missing_types: list[ResourceType]

