"""
Pydantic schemas for request/response models in the auth module.
"""

from typing import Optional

from pydantic import BaseModel


class LoginRequest(BaseModel):
    """Schema for login request payload."""
    password: Optional[str] = None


class LoginResponse(BaseModel):
    """Schema for login responses."""
    success: bool
    message: str
