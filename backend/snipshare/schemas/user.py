"""
SnipShare Backend: Account Request/Response Schemas
=====================================================

What:  Pydantic models for registration, login and the current-user view.
       UserResponse never includes the password hash.
"""

from typing import Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """Body of POST /api/register. Checked by validate_registration()."""
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)
    confirm_password: Optional[str] = Field(
        default=None,
        alias="confirmPassword",
        description="Must equal password",
    )

    model_config = {"populate_by_name": True}


class LoginRequest(BaseModel):
    """Body of POST /api/login."""
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)


class UserResponse(BaseModel):
    id: int
    username: str

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    message: str = Field(default="Login successful")
    user: UserResponse
