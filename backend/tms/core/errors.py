from fastapi import status


class TMSError(Exception):
    """Base class for errors raised by the identity and task services."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    headers = None

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(TMSError):
    status_code = status.HTTP_400_BAD_REQUEST


class Conflict(TMSError):
    # A taken username is reported as 400 on the HTTP surface
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(TMSError):
    status_code = status.HTTP_401_UNAUTHORIZED
    headers = {"WWW-Authenticate": "Bearer"}


class NotFound(TMSError):
    status_code = status.HTTP_404_NOT_FOUND


class InternalError(TMSError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
