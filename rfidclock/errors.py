"""
Error taxonomy for the ingestion and attendance engine.

Every error carries a short ``code`` that is used both as the reason of an
ignored scan and as the ``detail.code`` of REST error responses.
"""


class AttendanceError(Exception):
    code = "attendance-error"

    def __init__(self, message=None):
        super().__init__(message or self.code)
        self.message = message or self.code


# --- Business rule rejections (recoverable, swallowed on the ingestion path) ---

class BusinessRuleViolation(AttendanceError):
    code = "business-rule"


class AlreadyCheckedIn(BusinessRuleViolation):
    code = "already-checked-in"


class NoActiveSession(BusinessRuleViolation):
    code = "no-active-session"


class OutsideAllowedWindow(BusinessRuleViolation):
    code = "outside-allowed-window"


# --- Ownership conflicts (surfaced to the administrative caller) ---

class OwnershipConflict(AttendanceError):
    code = "ownership-conflict"


class AlreadyClaimed(OwnershipConflict):
    code = "already-claimed"


class NotOwned(OwnershipConflict):
    code = "not-owned"


# --- Ingestion ---

class UnparsablePayload(AttendanceError):
    code = "unparsable-payload"


class ChannelFetchFailed(AttendanceError):
    code = "channel-fetch-failed"

    def __init__(self, channel, message=None):
        super().__init__(message or f"Could not fetch channel {channel}")
        self.channel = channel


# --- Collaborators ---

class WorkerNotFound(AttendanceError):
    code = "worker-not-found"


class EnrollmentFailed(AttendanceError):
    code = "enrollment-failed"


class InvalidBadgeId(AttendanceError, ValueError):
    code = "invalid-badge-id"


class InvalidConfiguration(AttendanceError, ValueError):
    code = "invalid-configuration"
