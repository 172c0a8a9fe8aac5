class DomainError(Exception):
    """Base class for recoverable failures raised by the domain layer.

    ``reason`` is a short machine-checkable string, ``status_code`` the HTTP
    status the web layer answers with.
    """
    status_code = 400
    reason = "error"

    def __init__(self, message=None, reason=None):
        super().__init__(message or self.reason)
        self.message = message or self.reason
        if reason is not None:
            self.reason = reason

    def to_dict(self):
        return {"success": False, "msg": self.message, "reason": self.reason}


class NotFound(DomainError):
    status_code = 404
    reason = "not found"


class Conflict(DomainError):
    reason = "conflict"


class InvalidState(DomainError):
    reason = "invalid state"


class PermissionDenied(DomainError):
    status_code = 403
    reason = "forbidden"


class ValidationError(DomainError):
    reason = "validation failed"

    def __init__(self, message=None, errors=None):
        super().__init__(message or "Validation failed")
        self.errors = errors or {}

    def to_dict(self):
        data = super().to_dict()
        data["errors"] = self.errors
        return data
