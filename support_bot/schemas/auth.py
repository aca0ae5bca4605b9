"""
Account Schemas for Support Bot
===============================

Request/response models for signup, login and logout.

Endpoint Coverage:
------------------
- POST /api/signup: Create a user account
- POST /api/login: Exchange email + password for a bearer token
- POST /api/logout: Forget the caller's chat selection and log
"""

from typing import Literal

from pydantic import EmailStr, Field

from .base import CamelModel


class SignupRequest(CamelModel):
    """
    Attributes:
        name: Display name
        email: Unique login email
        password: Plain-text password (hashed before storage)
        role: "user" (default) or "admin"
    """
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: Literal["user", "admin"] = "user"


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class TokenResponse(CamelModel):
    token: str
    role: str
    user_id: int


class MessageResponse(CamelModel):
    message: str
