"""create resources, bookings, resource sets and staff

Revision ID: 20261017_0002
Revises: 20261017_0001
Create Date: 2026-10-17 00:10:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261017_0002"
down_revision = "20261017_0001"
branch_labels = None
depends_on = None


resource_type_enum = sa.Enum(
    "physical_room",
    "online_meeting",
    "equipment",
    "vehicle",
    "sports_facility",
    "instrument",
    "software_license",
    name="resource_type",
)
booking_status_enum = sa.Enum("pending", "confirmed", "cancelled", "completed", name="resource_booking_status")
staff_role_enum = sa.Enum("teacher", "manager", "admin", "support", "custodian", name="staff_role")
employment_type_enum = sa.Enum("full_time", "part_time", "contract", "volunteer", name="employment_type")
staff_status_enum = sa.Enum("active", "inactive", "suspended", "terminated", name="staff_status")


def upgrade() -> None:
    op.create_table(
        "resources",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("resource_type", resource_type_enum, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("building", sa.String(length=200), nullable=True),
        sa.Column("floor", sa.String(length=50), nullable=True),
        sa.Column("room_number", sa.String(length=50), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("platform", sa.String(length=50), nullable=True),
        sa.Column("account_email", sa.String(length=255), nullable=True),
        sa.Column("account_password_hint", sa.String(length=255), nullable=True),
        sa.Column("meeting_url", sa.String(length=500), nullable=True),
        sa.Column("meeting_id", sa.String(length=100), nullable=True),
        sa.Column("passcode", sa.String(length=100), nullable=True),
        sa.Column("license_limit", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("available_from", sa.String(length=8), nullable=True),
        sa.Column("available_until", sa.String(length=8), nullable=True),
        sa.Column("days_available", sa.JSON(), nullable=True),
        sa.Column("min_booking_duration", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("max_booking_duration", sa.Integer(), nullable=False, server_default="480"),
        sa.Column("buffer_time_before", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("buffer_time_after", sa.Integer(), nullable=False, server_default="15"),
        sa.Column("advance_booking_days", sa.Integer(), nullable=False, server_default="90"),
        sa.Column("requires_approval", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("approval_roles", sa.JSON(), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("image_url", sa.String(length=500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("capacity >= 1", name="ck_resources_capacity_positive"),
        sa.CheckConstraint(
            "min_booking_duration <= max_booking_duration",
            name="ck_resources_booking_duration_order",
        ),
    )
    op.create_index("ix_resources_school_id", "resources", ["school_id"])
    op.create_index("ix_resources_code", "resources", ["code"])

    op.create_table(
        "resource_bookings",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "resource_id", sa.String(length=36), sa.ForeignKey("resources.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("session_id", sa.String(length=36), nullable=True),
        sa.Column("start_datetime", sa.DateTime(), nullable=False),
        sa.Column("end_datetime", sa.DateTime(), nullable=False),
        sa.Column("booked_by", sa.String(length=36), nullable=True),
        sa.Column("booked_for", sa.String(length=200), nullable=True),
        sa.Column("status", booking_status_enum, nullable=False),
        sa.Column("approved_by", sa.String(length=36), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("recurrence_group_id", sa.String(length=36), nullable=True),
        sa.Column("booking_notes", sa.Text(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("start_datetime < end_datetime", name="ck_resource_bookings_interval"),
    )
    op.create_index("ix_resource_bookings_resource_id", "resource_bookings", ["resource_id"])
    op.create_index("ix_resource_bookings_session_id", "resource_bookings", ["session_id"])
    op.create_index("ix_resource_bookings_recurrence_group_id", "resource_bookings", ["recurrence_group_id"])
    op.create_index(
        "ix_resource_bookings_resource_window",
        "resource_bookings",
        ["resource_id", "start_datetime", "end_datetime"],
    )

    op.create_table(
        "resource_sets",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("resource_ids", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_resource_sets_school_id", "resource_sets", ["school_id"])

    op.create_table(
        "staff",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("school_id", sa.String(length=36), sa.ForeignKey("schools.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=True),
        sa.Column("staff_code", sa.String(length=20), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("role", staff_role_enum, nullable=False),
        sa.Column("department", sa.String(length=200), nullable=True),
        sa.Column("employment_type", employment_type_enum, nullable=True),
        sa.Column("hire_date", sa.Date(), nullable=True),
        sa.Column("contract_end_date", sa.Date(), nullable=True),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("specializations", sa.JSON(), nullable=True),
        sa.Column("max_weekly_hours", sa.Integer(), nullable=True),
        sa.Column("min_weekly_hours", sa.Integer(), nullable=True),
        sa.Column("availability", sa.JSON(), nullable=False),
        sa.Column("portal_access_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("can_login", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("invite_token", sa.String(length=100), nullable=True, unique=True),
        sa.Column("invite_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", staff_status_enum, nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_staff_school_id", "staff", ["school_id"])
    op.create_index("ix_staff_staff_code", "staff", ["staff_code"])


def downgrade() -> None:
    op.drop_index("ix_staff_staff_code", table_name="staff")
    op.drop_index("ix_staff_school_id", table_name="staff")
    op.drop_table("staff")
    op.drop_index("ix_resource_sets_school_id", table_name="resource_sets")
    op.drop_table("resource_sets")
    op.drop_index("ix_resource_bookings_resource_window", table_name="resource_bookings")
    op.drop_index("ix_resource_bookings_recurrence_group_id", table_name="resource_bookings")
    op.drop_index("ix_resource_bookings_session_id", table_name="resource_bookings")
    op.drop_index("ix_resource_bookings_resource_id", table_name="resource_bookings")
    op.drop_table("resource_bookings")
    op.drop_index("ix_resources_code", table_name="resources")
    op.drop_index("ix_resources_school_id", table_name="resources")
    op.drop_table("resources")

    bind = op.get_bind()
    for enum in (staff_status_enum, employment_type_enum, staff_role_enum, booking_status_enum, resource_type_enum):
        enum.drop(bind, checkfirst=True)
