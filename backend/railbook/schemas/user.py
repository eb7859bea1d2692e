"""
Pydantic schemas for account registration and identity.
"""

from pydantic import BaseModel, Field


class UserRegister(BaseModel):
    username: str = Field(..., min_length=3, max_length=100, pattern=r"^[a-zA-Z0-9_]+$")
    password: str = Field(..., min_length=8, max_length=128)


class UserResponse(BaseModel):
    username: str
    is_admin: bool = False
