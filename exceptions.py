"""
Exceptions
Error taxonomy shared by the calculators, services and API layer
"""

from fastapi import status


class MedTrackError(Exception):
    """Base class for application errors; carries the HTTP status it maps to"""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__doc__ or self.__class__.__name__


class NotAuthenticatedError(MedTrackError):
    """No authenticated user"""
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDeniedError(MedTrackError):
    """Authenticated user may not access this resource"""
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(MedTrackError):
    """Resource not found"""
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(MedTrackError):
    """Rejected input (bad image, future date, malformed field)"""
    status_code = status.HTTP_400_BAD_REQUEST


class SubmissionInProgressError(MedTrackError):
    """A dose submission for this medication is still in flight"""
    status_code = status.HTTP_409_CONFLICT


class DataFormatError(MedTrackError):
    """Unparseable date value"""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class BackendUnavailableError(MedTrackError):
    """Database or storage backend could not be reached"""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


__all__ = [
    "MedTrackError",
    "NotAuthenticatedError",
    "PermissionDeniedError",
    "NotFoundError",
    "ValidationError",
    "SubmissionInProgressError",
    "DataFormatError",
    "BackendUnavailableError",
]
