"""
SoulSocial Backend: User and Profile Schemas
==============================================

What:  API contracts for registration, login and profile endpoints.
How:   Register and profile update arrive as multipart forms (they may carry
       an avatar file) and are parsed in the routes; login is plain JSON.
"""

from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(description="Registered email address")
    password: str = Field(description="Account password")


class AuthResponse(BaseModel):
    """
    Returned by register (201) and login (200).

    `username` and `avatar` are what older clients store locally; `token` is
    the signed session token newer clients send back as
    `Authorization: Bearer <token>`.
    """
    username: str
    avatar: Optional[str] = Field(default=None, description="Avatar URL, null if none")
    token: str = Field(description="Signed session token (JWT)")


class ProfileResponse(BaseModel):
    username: str
    bio: str = ""
    avatar: Optional[str] = Field(default=None, description="Avatar URL, null if none")
    language: str = "es"
    post_count: int = Field(default=0, description="Number of posts authored (live count)")
