"""
app/schemas/auth.py

Purpose: Request/response schemas for sign-up, sign-in and session checks
"""

from pydantic import BaseModel, Field, validator

from app.models.user import PublicUser
from utils.constants import MAX_PASSWORD_BYTES, PASSWORD_TOO_LONG_MESSAGE
from utils.validation_utils import validate_email, sanitize_input


def check_password_length(v: str) -> str:
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(PASSWORD_TOO_LONG_MESSAGE)
    return v


class SignUpRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: str = Field(..., max_length=254, description="Email address (case-sensitive)")
    password: str = Field(..., min_length=6, max_length=MAX_PASSWORD_BYTES, description="Plaintext password")

    @validator("name")
    def clean_name(cls, v):
        v = sanitize_input(v)
        if not v:
            raise ValueError("name must not be blank")
        return v

    @validator("email")
    def check_email(cls, v):
        v = v.strip()
        if not validate_email(v):
            raise ValueError("invalid email address")
        return v

    @validator("password")
    def password_fits_bcrypt(cls, v):
        return check_password_length(v)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Ada",
                "email": "ada@example.com",
                "password": "correct horse battery"
            }
        }


class SignInRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=254)
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_BYTES)

    @validator("email")
    def strip_email(cls, v):
        return v.strip()

    @validator("password")
    def password_fits_bcrypt(cls, v):
        return check_password_length(v)


class UserResponse(BaseModel):
    """
    Response body for every endpoint that returns the current user.
    """
    user: PublicUser
