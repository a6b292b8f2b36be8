from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PreconditionMissing(ServiceError):
    """No active school year, or no Unclassified section for it. Nothing is written."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class ValidationFailed(ServiceError):
    """A single request was rejected before any write (archived, sentinel, key mismatch, full)."""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST) -> None:
        super().__init__(message, status_code)


class PersistenceFailure(ServiceError):
    """The store rejected a write. `assigned` counts placements committed before the failure."""

    def __init__(self, message: str, assigned: int = 0) -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assigned = assigned
