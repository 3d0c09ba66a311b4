from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field, RootModel, field_validator, model_validator

from classboom.models.staff import EmploymentType, StaffRole, StaffStatus
from classboom.services.availability import DAY_KEYS, TIME_PATTERN, parse_time_to_minutes


class TimeSlot(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "TimeSlot":
        if parse_time_to_minutes(self.end) <= parse_time_to_minutes(self.start):
            raise ValueError("end must be after start")
        return self


class DayAvailability(BaseModel):
    available: bool = False
    slots: list[TimeSlot] = Field(default_factory=list, max_length=24)

    @model_validator(mode="after")
    def drop_slots_when_unavailable(self) -> "DayAvailability":
        if not self.available:
            self.slots = []
        return self


class WeeklyAvailability(RootModel[dict[str, DayAvailability]]):
    root: dict[str, DayAvailability] = Field(default_factory=dict)

    @field_validator("root", mode="before")
    @classmethod
    def normalize_day_keys(cls, value):
        if not isinstance(value, dict):
            return value
        normalized = {}
        for key, entry in value.items():
            day = str(key).strip().lower()
            if day not in DAY_KEYS:
                raise ValueError(f"Invalid day key: {key}")
            normalized[day] = entry
        return normalized


class StaffBase(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: str | None = Field(default=None, max_length=50)
    role: StaffRole
    department: str | None = Field(default=None, max_length=200)
    employment_type: EmploymentType | None = None
    hire_date: date | None = None
    contract_end_date: date | None = None
    hourly_rate: Decimal | None = Field(default=None, ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    specializations: list[str] | None = None
    max_weekly_hours: int | None = Field(default=None, ge=0, le=168)
    min_weekly_hours: int | None = Field(default=None, ge=0, le=168)
    notes: str | None = None

    @field_validator("phone", "department", "notes", mode="before")
    @classmethod
    def empty_string_is_absent(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class StaffCreate(StaffBase):
    availability: WeeklyAvailability | None = None

    @model_validator(mode="after")
    def validate_weekly_bounds(self) -> "StaffCreate":
        if (
            self.min_weekly_hours is not None
            and self.max_weekly_hours is not None
            and self.min_weekly_hours > self.max_weekly_hours
        ):
            raise ValueError("min_weekly_hours cannot exceed max_weekly_hours")
        return self


class StaffUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    role: StaffRole | None = None
    department: str | None = Field(default=None, max_length=200)
    employment_type: EmploymentType | None = None
    hire_date: date | None = None
    contract_end_date: date | None = None
    hourly_rate: Decimal | None = Field(default=None, ge=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    specializations: list[str] | None = None
    max_weekly_hours: int | None = Field(default=None, ge=0, le=168)
    min_weekly_hours: int | None = Field(default=None, ge=0, le=168)
    status: StaffStatus | None = None
    notes: str | None = None

    @field_validator(
        "phone", "department", "notes", "hire_date", "contract_end_date", "hourly_rate", mode="before"
    )
    @classmethod
    def empty_string_is_absent(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class StaffOut(BaseModel):
    id: str
    staff_code: str
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str | None
    role: StaffRole
    department: str | None
    employment_type: EmploymentType | None
    hire_date: date | None
    status: StaffStatus
    max_weekly_hours: int | None
    min_weekly_hours: int | None
    availability: dict
    portal_access_enabled: bool
    can_login: bool
    invite_sent_at: datetime | None

    model_config = {"from_attributes": True}


class StaffFilters(BaseModel):
    role: StaffRole | None = None
    status: StaffStatus | None = None
    department: str | None = None
    employment_type: EmploymentType | None = None
    search: str | None = None


class LongestDayOut(BaseModel):
    day: str
    hours: float


class ScheduleSummaryOut(BaseModel):
    total_hours: float
    available_day_count: int
    per_day_hours: dict[str, float]
    longest_day: LongestDayOut | None
    min_weekly_hours: int | None = None
    max_weekly_hours: int | None = None
    within_weekly_bounds: bool = True


class SlotQuery(BaseModel):
    day: str
    start: str
    end: str

    @field_validator("day")
    @classmethod
    def validate_day(cls, value: str) -> str:
        day = value.strip().lower()
        if day not in DAY_KEYS:
            raise ValueError("Invalid day value")
        return day

    @field_validator("start", "end")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "SlotQuery":
        if parse_time_to_minutes(self.end) <= parse_time_to_minutes(self.start):
            raise ValueError("end must be after start")
        return self


class StaffAvailabilityCheckOut(BaseModel):
    staff_id: str
    day: str
    start: str
    end: str
    is_available: bool


class StaffStats(BaseModel):
    total: int
    active: int
    by_role: dict[str, int]
    by_status: dict[str, int]
    by_employment_type: dict[str, int]


class InvitationOut(BaseModel):
    staff_id: str
    email: str
    invite_sent_at: datetime
