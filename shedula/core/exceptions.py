"""
Domain exceptions for the scheduling core.

Services raise these; the FastAPI exception handlers in ``shedula.main``
translate them into JSON error responses.
"""


class SchedulingError(Exception):
    """Base class for every per-request scheduling failure."""

    status_code = 400
    code = "SCHEDULING_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(SchedulingError):
    """Raised when required booking or reschedule fields are missing or malformed."""

    status_code = 422
    code = "VALIDATION_ERROR"


class SlotConflict(SchedulingError):
    """Raised when the target slot is absent or already reserved."""

    status_code = 409
    code = "SLOT_CONFLICT"

    def __init__(self, doctor_id: str, channel: str, slot_date, slot_time: str, message: str = None):
        self.doctor_id = doctor_id
        self.channel = channel
        self.slot_date = slot_date
        self.slot_time = slot_time
        super().__init__(
            message
            or f"Slot {slot_date} {slot_time} ({channel}) is not available for doctor {doctor_id}. "
            "Please pick another slot."
        )


class InvalidTransition(SchedulingError):
    """Raised when a lifecycle change is not allowed from the current status."""

    status_code = 409
    code = "INVALID_TRANSITION"

    def __init__(self, appointment_id, current_status: str, action: str, message: str = None):
        self.appointment_id = appointment_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            message or f"Cannot {action} appointment {appointment_id} in status '{current_status}'"
        )


class NotFound(SchedulingError):
    """Raised when a referenced appointment or doctor no longer exists."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, kind: str, identifier):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class TokenSpaceExhausted(SchedulingError):
    """Raised when no free booking token could be generated for a doctor."""

    status_code = 503
    code = "TOKEN_SPACE_EXHAUSTED"

    def __init__(self, doctor_id: str, attempts: int):
        self.doctor_id = doctor_id
        self.attempts = attempts
        super().__init__(
            f"Could not generate a unique token for doctor {doctor_id} after {attempts} attempts"
        )
