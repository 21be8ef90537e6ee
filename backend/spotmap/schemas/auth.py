"""
SpotMap Backend: Authentication Schemas
========================================

What:  Request bodies for sign-up/sign-in and the identity returned to clients.
"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class Identity(BaseModel):
    """The signed-in user as seen by the rest of the application."""

    uid: str
    email: str
    display_name: Optional[str] = None

    @property
    def label(self) -> str:
        """Name snapshot written onto spots and comments."""
        return self.display_name or self.email


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    display_name: str = Field(..., min_length=1, max_length=100)


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class SessionResponse(BaseModel):
    """Returned after sign-up and sign-in."""

    access_token: str
    token_type: str = "bearer"
    identity: Identity


class MessageResponse(BaseModel):
    message: str
