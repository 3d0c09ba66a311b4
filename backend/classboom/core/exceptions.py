class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ValidationError(AppError):
    """Raised when input is malformed or breaks a booking rule."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=422, details=details)

class MalformedTimeError(ValidationError):
    """Raised when a wall-clock time is not in HH:MM 24-hour format."""
    def __init__(self, value):
        super().__init__(f"Malformed time value: {value!r}", details={"value": value})

class NotAuthenticatedError(AppError):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, status_code=401)

class NoTenantError(AppError):
    def __init__(self, message: str = "No school found for user"):
        super().__init__(message, status_code=403)

class PermissionDeniedError(AppError):
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, status_code=403)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"entity": resource_type, "id": resource_id},
        )

class ResourceConflictError(AppError):
    """Raised when a requested interval overlaps existing bookings."""
    def __init__(self, message: str, conflicts: list[dict]):
        self.conflicts = conflicts
        super().__init__(message, status_code=409, details={"conflicts": conflicts})

class ResourceInUseError(AppError):
    """Raised when a resource still has confirmed bookings ahead of it."""
    def __init__(self, resource_id: str, booking_count: int):
        super().__init__(
            "Cannot delete resource with future bookings",
            status_code=409,
            details={"resource_id": resource_id, "booking_count": booking_count},
        )

class ResourceUnavailableError(AppError):
    def __init__(self, message: str, resource_id: str, conflicts: list[dict] | None = None):
        super().__init__(
            message,
            status_code=409,
            details={"resource_id": resource_id, "conflicts": conflicts or []},
        )

class InvitationDeliveryError(AppError):
    def __init__(self, recipient: str, reason: str):
        super().__init__(
            f"Failed to send invitation email: {reason}",
            status_code=502,
            details={"recipient": recipient},
        )
