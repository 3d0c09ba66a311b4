import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Enum as SAEnum, ForeignKey, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from classboom.db.base import Base


class StaffRole(str, Enum):
    teacher = "teacher"
    manager = "manager"
    admin = "admin"
    support = "support"
    custodian = "custodian"


class EmploymentType(str, Enum):
    full_time = "full_time"
    part_time = "part_time"
    contract = "contract"
    volunteer = "volunteer"


class StaffStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"
    terminated = "terminated"


class Staff(Base):
    __tablename__ = "staff"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    school_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("schools.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    staff_code: Mapped[str] = mapped_column(String(20), index=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    role: Mapped[StaffRole] = mapped_column(SAEnum(StaffRole, name="staff_role"), nullable=False)
    department: Mapped[str | None] = mapped_column(String(200), nullable=True)
    employment_type: Mapped[EmploymentType | None] = mapped_column(
        SAEnum(EmploymentType, name="employment_type"), nullable=True
    )
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    contract_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    specializations: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    max_weekly_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    min_weekly_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)
    availability: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    portal_access_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_login: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    invite_token: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)
    invite_sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    status: Mapped[StaffStatus] = mapped_column(
        SAEnum(StaffStatus, name="staff_status"), nullable=False, default=StaffStatus.active
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
