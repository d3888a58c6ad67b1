from typing import Literal

from pydantic import BaseModel, Field


class SignupRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=100)


class LoginRequest(BaseModel):
    email: str
    password: str
    session_mode: Literal["persisted", "stateless"] = "persisted"


class PasswordResetRequestIn(BaseModel):
    email: str
    reason: str = Field(min_length=1, max_length=1000)


class AdminPasswordResetIn(BaseModel):
    email: str | None = None
    request_id: int | None = None
    new_password: str = Field(min_length=1)


class PasswordRequestUpdateIn(BaseModel):
    status: Literal["rejected", "completed"]
    reason: str | None = None


class UserCreateRequest(SignupRequest):
    role: Literal["admin", "user"] = "user"


class UserUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    role: Literal["admin", "user"] | None = None
    status: Literal["active", "inactive"] | None = None
