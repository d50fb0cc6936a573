"""Authentication request and response schemas."""

from pydantic import BaseModel, Field

from .user import UserResponse


class RegisterRequest(BaseModel):
    """Schema for creating an account with email and password."""

    email: str | None = Field(None, description="Account email address")
    password: str | None = Field(None, description="Plain-text password; stored hashed")
    display_name: str | None = Field(None, description="Name shown to other users")
    avatar_url: str | None = Field(None, description="Optional avatar URL")


class RegisterResponse(BaseModel):
    """Registration outcome."""

    message: str
    user: UserResponse
    code_sent: bool = Field(..., description="False if the verification email failed to send")


class SendCodeRequest(BaseModel):
    """Request a fresh verification code by email."""

    email: str = Field(..., description="Email of an existing account")


class VerifyCodeRequest(BaseModel):
    """Redeem a verification code."""

    email: str = Field(..., description="Email the code was sent to")
    code: str = Field(..., description="Six-digit verification code")


class LoginRequest(BaseModel):
    """Schema for password login."""

    email: str
    password: str


class TokenResponse(BaseModel):
    """Bearer token returned after login or code verification."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type (always 'bearer')")
    user: UserResponse


class VerifyTokenResponse(BaseModel):
    """Identity resolved from the presented bearer token."""

    valid: bool
    user_id: str
    email: str
    display_name: str
    role: str


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


class RevokeSessionsResponse(BaseModel):
    """Outcome of signing out everywhere."""

    revoked: int = Field(..., description="Number of sessions removed")
