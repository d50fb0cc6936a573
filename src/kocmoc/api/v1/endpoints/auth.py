"""Authentication endpoints: registration, codes, login and logout."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials

from kocmoc.schemas.auth import (
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    RevokeSessionsResponse,
    SendCodeRequest,
    TokenResponse,
    VerifyCodeRequest,
    VerifyTokenResponse,
)
from kocmoc.schemas.user import UserResponse

from ..dependencies import ContainerDep, CurrentIdentityDep, bearer_scheme

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, container: ContainerDep) -> RegisterResponse:
    """Create an account and email it a verification code."""
    result = container.accounts.register(
        payload.email or "",
        payload.password or "",
        payload.display_name or "",
        payload.avatar_url,
    )
    message = (
        "User registered, verification code sent"
        if result.code_sent
        else "User registered, but the verification email could not be sent"
    )
    return RegisterResponse(
        message=message,
        user=UserResponse.model_validate(result.user),
        code_sent=result.code_sent,
    )


@router.post("/send-code", response_model=MessageResponse)
def send_code(payload: SendCodeRequest, container: ContainerDep) -> MessageResponse:
    """Issue a new verification code to an existing account."""
    container.accounts.send_code(payload.email)
    return MessageResponse(message="Verification code sent")


@router.post("/verify-code", response_model=TokenResponse)
def verify_code(payload: VerifyCodeRequest, container: ContainerDep) -> TokenResponse:
    """Redeem a verification code for a bearer token."""
    redemption = container.accounts.verify_code(payload.email, payload.code)
    user = container.accounts.get_user(redemption.user_id)
    return TokenResponse(access_token=redemption.token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, container: ContainerDep) -> TokenResponse:
    """Exchange email and password for a bearer token."""
    result = container.accounts.login(payload.email, payload.password)
    return TokenResponse(access_token=result.token, user=UserResponse.model_validate(result.user))


@router.post("/logout", response_model=MessageResponse)
def logout(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    container: ContainerDep,
) -> MessageResponse:
    """Revoke the session behind the presented token.

    Logging out twice, or with a token that no longer resolves, still succeeds.
    """
    if credentials is not None and credentials.credentials:
        container.accounts.logout(credentials.credentials)
    return MessageResponse(message="Logged out")


@router.delete("/sessions", response_model=RevokeSessionsResponse)
def revoke_sessions(identity: CurrentIdentityDep, container: ContainerDep) -> RevokeSessionsResponse:
    """Sign the caller out on every device."""
    return RevokeSessionsResponse(revoked=container.accounts.logout_everywhere(identity))


@router.get("/verify", response_model=VerifyTokenResponse)
def verify_token(identity: CurrentIdentityDep) -> VerifyTokenResponse:
    """Report who the presented token belongs to."""
    return VerifyTokenResponse(
        valid=True,
        user_id=identity.user_id,
        email=identity.email,
        display_name=identity.display_name,
        role=identity.role.value,
    )
