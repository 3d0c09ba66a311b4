from classboom.models.activity_log import ActivityLog  # noqa: F401
from classboom.models.booking import BLOCKING_STATUSES, BookingStatus, ResourceBooking  # noqa: F401
from classboom.models.resource import Resource, ResourceSet, ResourceType  # noqa: F401
from classboom.models.school import School  # noqa: F401
from classboom.models.staff import EmploymentType, Staff, StaffRole, StaffStatus  # noqa: F401
from classboom.models.user import User, UserRole  # noqa: F401
