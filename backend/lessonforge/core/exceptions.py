class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ScheduleValidationError(AppError):
    """Raised when scheduling input is rejected locally, before anything is sent or stored."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status_code=400, details=details)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class TransportError(AppError):
    """Raised when a scheduling request fails in transit or returns a non-success status.

    Retryable: callers keep their in-progress resolution state.
    """
    def __init__(self, message: str, status_code: int | None = None, details: dict = None):
        payload = dict(details or {})
        if status_code is not None:
            payload.setdefault("upstream_status", status_code)
        super().__init__(message, status_code=502, details=payload)
        self.upstream_status = status_code

class ServerReconciliationError(AppError):
    """Raised when the server re-validated a submission and reported a new conflict set."""
    def __init__(self, message: str, conflicts: list | None = None, details: dict = None):
        super().__init__(message, status_code=409, details=details)
        self.conflicts = list(conflicts or [])

class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
