from fastapi import status


class ReviewServiceError(Exception):
    """Base class for every failure the review core reports to its caller.

    ``code`` is a stable identifier the transport layer renders next to the
    message; ``status_code`` is the HTTP status it maps to.
    """

    code = "review_service_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class DataAccessError(ReviewServiceError):
    code = "data_access_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class NotFoundError(ReviewServiceError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenError(ReviewServiceError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(ReviewServiceError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class AlreadyCompletedError(ReviewServiceError):
    """A completed review can no longer be deleted."""

    code = "already_completed"
    status_code = status.HTTP_403_FORBIDDEN


class AlreadyAssignedError(ConflictError):
    """The film received a reviewer before this invitation could be written."""

    code = "already_assigned"
