"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel, Field, field_validator

from app.services.passwords import BCRYPT_MAX_BYTES, password_too_long

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_BYTES = BCRYPT_MAX_BYTES
EMAIL_MAX_LENGTH = 256
NAME_MAX_LENGTH = 256


def _check_password_bytes(value: str) -> str:
    if password_too_long(value):
        raise ValueError(f"Password cannot exceed {PASSWORD_MAX_BYTES} bytes")
    return value


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3, max_length=EMAIL_MAX_LENGTH, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=PASSWORD_MIN_LENGTH)
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)


class UserResponse(BaseModel):
    id: int
    email: str
    name: str


class TokenResponse(BaseModel):
    token: str
    email: str
    name: str


class PrincipalResponse(BaseModel):
    user_id: int
    email: str
    name: str
    authorities: list[str]


class ForgotPasswordRequest(BaseModel):
    email: str = Field(min_length=1)


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=PASSWORD_MIN_LENGTH)

    @field_validator("new_password")
    @classmethod
    def new_password_fits_bcrypt(cls, v: str) -> str:
        return _check_password_bytes(v)


class MessageResponse(BaseModel):
    message: str
