"""Domain exceptions for the request lifecycle.

Each carries the HTTP status the API layer responds with, so blueprints
can raise-through and let the app-level error handler render JSON.
"""


class DesignRequestError(Exception):
    """Base class for all request-lifecycle failures."""

    status_code = 500
    code = "error"

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__

    def to_dict(self):
        return {"ok": False, "error": self.message, "code": self.code}


class ValidationError(DesignRequestError, ValueError):
    """Request fields are missing or invalid."""

    status_code = 422
    code = "validation_error"

    def __init__(self, message=None, errors=None):
        self.errors = errors or []
        if message is None and self.errors:
            message = " ".join(self.errors)
        super().__init__(message)

    def to_dict(self):
        data = super().to_dict()
        if self.errors:
            data["errors"] = self.errors
        return data


class RecordNotFound(DesignRequestError, LookupError):
    """Design request not found."""

    status_code = 404
    code = "not_found"


class PermissionDenied(DesignRequestError):
    """The record store rejected the write."""

    status_code = 403
    code = "permission_denied"


class PreconditionFailed(DesignRequestError):
    """The record is not in a state that allows this action."""

    status_code = 409
    code = "precondition_failed"


class ConfigurationMissing(DesignRequestError):
    """Tracker configuration missing."""

    status_code = 503
    code = "configuration_missing"


class TrackerRejected(DesignRequestError):
    """The tracker refused to create the card."""

    status_code = 502
    code = "tracker_rejected"

    def __init__(self, message=None, tracker_status=None, body=None):
        super().__init__(message)
        self.tracker_status = tracker_status
        self.body = body

    def to_dict(self):
        data = super().to_dict()
        data["tracker_status"] = self.tracker_status
        data["details"] = self.body
        return data


class StorageError(DesignRequestError):
    """Attachment could not be stored."""

    status_code = 502
    code = "storage_error"
