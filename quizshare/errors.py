"""Failure kinds surfaced by the quiz handlers.

Each one is an ``HTTPException`` so FastAPI renders it as
``{"detail": "<reason>"}`` with the matching status code.
"""
from fastapi import HTTPException, status


class QuizShareError(HTTPException):
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Something went wrong"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.code, detail=detail or self.default_detail)


class Unauthorized(QuizShareError):
    code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"


class Forbidden(QuizShareError):
    code = status.HTTP_403_FORBIDDEN
    default_detail = "Operation not permitted"


class NotFound(QuizShareError):
    code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ValidationFailed(QuizShareError):
    code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid payload"


class AlreadySubmitted(QuizShareError):
    code = status.HTTP_400_BAD_REQUEST
    default_detail = "You have already taken this quiz"


class PayloadTooLarge(QuizShareError):
    code = 413
    default_detail = "Request body too large. Maximum size is 10MB"


class InternalError(QuizShareError):
    pass
