from rest_framework import status
from rest_framework.response import Response
from rest_framework.exceptions import APIException


class ScreeningError(APIException):
    """Base class for failures surfaced by the screening core."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Screening request failed."
    default_code = "screening_error"


class ValidationError(ScreeningError):
    """Answer payload is malformed or references questions outside the assigned set."""
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Invalid answer payload."
    default_code = "invalid_answers"


class AlreadyWrittenError(ScreeningError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Candidate has already written this test."
    default_code = "already_written"


class NotFoundError(ScreeningError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class TransitionError(ScreeningError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Status transition not allowed."
    default_code = "invalid_transition"


class PersistenceError(ScreeningError):
    """Scoring transaction failed and was rolled back."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Could not save the test result. No changes were made."
    default_code = "persistence_error"


def error_response(exc):
    return Response({"error": exc.detail}, status=exc.status_code)
