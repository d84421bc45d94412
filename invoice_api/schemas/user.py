"""
Pydantic schemas for User-related responses and admin requests.

These schemas control what user data is exposed through the API.
Notice that hashed_password is NEVER included in any response schema —
this is a critical security boundary.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr

from invoice_api.models.user import Department, UserRole


class UserResponse(BaseModel):
    """Public representation of a User (never includes password hash)."""
    id: int
    name: str
    email: EmailStr
    role: UserRole
    department: Department
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserStatusUpdateRequest(BaseModel):
    """Request body for PATCH /api/users/{id}/status (admin only)."""
    is_active: bool


class UserEnvelope(BaseModel):
    """{"success": true, "message": ..., "data": {"user": ...}}"""

    class Data(BaseModel):
        user: UserResponse

    success: bool = True
    message: str | None = None
    data: Data


class UserListEnvelope(BaseModel):

    class Data(BaseModel):
        users: list[UserResponse]
        count: int

    success: bool = True
    data: Data
