"""
Users API schemas (request bodies).

Fields are optional at the parsing layer so the service can answer missing
values with its own messages; type errors are still rejected by pydantic.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CreateUserRequest(BaseModel):
    name: str | None = None
    email: str | None = None


class UpdateUserRequest(BaseModel):
    name: str | None = None
    email: str | None = None


class UserPatch(BaseModel):
    """
    Fields supplied to an update; None means "keep the stored value".
    """

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    email: str | None = None

    def is_empty(self) -> bool:
        return self.name is None and self.email is None
