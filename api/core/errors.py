"""
Failures the users API reports to clients.

Each error carries the HTTP status it is rendered with; `main.py` turns them
into the `{"message": ..., "status": "error"}` envelope.
"""

from __future__ import annotations

from fastapi import status


class UserApiError(RuntimeError):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(UserApiError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(UserApiError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(UserApiError):
    status_code = status.HTTP_409_CONFLICT


class InternalError(UserApiError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
