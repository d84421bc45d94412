"""
Pydantic schemas for authentication endpoints.

Pydantic validates incoming data automatically — if a field is the wrong type
or out of range, FastAPI returns a 422 VALIDATION_ERROR before our code runs.

Two deliberate exceptions to "validate everything in the schema":
  - LoginRequest fields are optional, because a missing email or password is
    reported as 400 MISSING_CREDENTIALS by the service, not as a 422.
  - ChangePasswordRequest likewise leaves presence and length checks to the
    service so the API can answer MISSING_PASSWORDS / WEAK_PASSWORD.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator

from invoice_api.config import settings
from invoice_api.models.user import Department, UserRole, normalize_email
from invoice_api.schemas.user import UserResponse


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=settings.PASSWORD_MIN_LENGTH, max_length=255)
    role: UserRole = UserRole.VIEWER
    department: Department

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be between 2 and 100 characters")
        return value

    @field_validator("email", mode="before")
    @classmethod
    def clean_email(cls, value):
        if isinstance(value, str):
            return normalize_email(value)
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login."""
    email: str | None = None
    password: str | None = None


class ProfileUpdateRequest(BaseModel):
    """
    Request body for PUT /api/auth/profile.

    Only name and department are declared. Anything else a client sends
    (role, email, is_active, ...) is dropped by Pydantic and never reaches
    the service.
    """
    name: str | None = Field(None, min_length=2, max_length=100)
    department: Department | None = None


class ChangePasswordRequest(BaseModel):
    """Request body for PUT /api/auth/change-password."""
    current_password: str | None = Field(None, alias="currentPassword")
    new_password: str | None = Field(None, alias="newPassword")

    model_config = {"populate_by_name": True}


class AuthData(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"


class AuthResponse(BaseModel):
    """Response body for successful register/login — user info + JWT."""
    success: bool = True
    message: str
    data: AuthData


class MessageResponse(BaseModel):
    success: bool = True
    message: str
