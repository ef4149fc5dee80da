"""
Authentication endpoints: sign-up, sign-in and the current user's profile.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from storycraft.api.deps import get_auth_service, get_current_user
from storycraft.core.logging import get_logger
from storycraft.domain.user import PublicUser, User
from storycraft.services.auth_service import AuthResult, AuthService

logger = get_logger(__name__)

router = APIRouter(prefix="/auth")


# Request models
class SignupRequest(BaseModel):
    """Request to create an account.

    Fields are optional here so that missing values are reported with the
    service's own message.
    """

    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class SigninRequest(BaseModel):
    """Request to sign in."""

    email: Optional[str] = None
    password: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    """Profile fields to change."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    """Request to change the password."""

    current_password: str = Field(..., description="Password currently in use")
    new_password: str = Field(..., description="Replacement password")


# Response models
class UserResponse(BaseModel):
    """Wrapper for a single user."""

    user: PublicUser


@router.post("/signup", response_model=AuthResult, status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResult:
    """
    Create an account and return an access token.
    """
    return await auth_service.signup(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
    )


@router.post("/signin", response_model=AuthResult)
async def signin(
    request: SigninRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthResult:
    """
    Exchange email and password for an access token.
    """
    return await auth_service.signin(email=request.email, password=request.password)


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> UserResponse:
    """
    Get the signed-in user's profile.
    """
    return UserResponse(user=user.to_public())


@router.patch("/me", response_model=UserResponse)
async def update_me(
    request: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> UserResponse:
    """
    Update the signed-in user's names.
    """
    updated = await auth_service.update_profile(
        user,
        first_name=request.first_name,
        last_name=request.last_name,
    )
    return UserResponse(user=updated)


@router.post("/me/password")
async def change_password(
    request: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict[str, str]:
    """
    Change the signed-in user's password.
    """
    await auth_service.change_password(user, request.current_password, request.new_password)
    return {"message": "Password updated successfully"}
