import logging
from typing import List

from fastapi import APIRouter, Depends, Path, status

from hardware_store.core.dependencies import get_current_user, get_token_service, get_user_service, require_permission
from hardware_store.core.identity import ResolvedIdentity
from hardware_store.core.permissions import PERMISSIONS, require_self_or_role
from hardware_store.core.security import TokenService
from hardware_store.schemas.common import MAX_ID, ApiResponse, ok
from hardware_store.schemas.user import (
    ChangePasswordRequest,
    LoginResult,
    PasswordReset,
    User,
    UserCreate,
    UserLogin,
)
from hardware_store.services.user_service import UserService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/login", response_model=ApiResponse[LoginResult], summary="Log in")
def login(
    credentials: UserLogin,
    users: UserService = Depends(get_user_service),
    tokens: TokenService = Depends(get_token_service),
):
    """Public endpoint: exchange username and password for a bearer token"""
    user, token = users.authenticate(credentials.username, credentials.password)
    expires_in = int(tokens.expires_in.total_seconds())
    return ok(
        LoginResult(user=user, access_token=token, expires_in=expires_in),
        "Login successful",
    )


@router.get("/profile", response_model=ApiResponse[User], summary="Current user profile")
def get_profile(
    current_user: ResolvedIdentity = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    return ok(users.get_profile(current_user.id))


@router.put("/change-password", response_model=ApiResponse[None], summary="Change own password")
def change_password(
    payload: ChangePasswordRequest,
    current_user: ResolvedIdentity = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    users.change_password(current_user.id, payload.old_password, payload.new_password)
    return ok(message="Password changed successfully")


@router.get("/users", response_model=ApiResponse[List[User]], summary="List user accounts")
def list_users(
    current_user: ResolvedIdentity = Depends(require_permission("users.list")),
    users: UserService = Depends(get_user_service),
):
    return ok(users.list_users())


@router.get("/users/{user_id}", response_model=ApiResponse[User], summary="Get a user account")
def get_user(
    user_id: int = Path(..., gt=0, le=MAX_ID),
    current_user: ResolvedIdentity = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    """Users may read their own account; managers may read any account"""
    require_self_or_role(current_user, user_id, PERMISSIONS["users.read"])
    return ok(users.get_user(user_id))


@router.post(
    "/users",
    response_model=ApiResponse[User],
    status_code=status.HTTP_201_CREATED,
    summary="Create a user account",
)
def create_user(
    payload: UserCreate,
    current_user: ResolvedIdentity = Depends(require_permission("users.create")),
    users: UserService = Depends(get_user_service),
):
    logger.info(f"User {current_user.username} creating account {payload.username}")
    user = users.create_user(payload.username, payload.password, payload.role)
    return ok(user, "User created successfully")


@router.put("/users/{user_id}/deactivate", response_model=ApiResponse[None], summary="Deactivate a user")
def deactivate_user(
    user_id: int = Path(..., gt=0, le=MAX_ID),
    current_user: ResolvedIdentity = Depends(require_permission("users.deactivate")),
    users: UserService = Depends(get_user_service),
):
    users.deactivate_user(current_user.id, user_id)
    return ok(message="User deactivated successfully")


@router.put("/users/{user_id}/reactivate", response_model=ApiResponse[None], summary="Reactivate a user")
def reactivate_user(
    user_id: int = Path(..., gt=0, le=MAX_ID),
    current_user: ResolvedIdentity = Depends(require_permission("users.reactivate")),
    users: UserService = Depends(get_user_service),
):
    users.reactivate_user(user_id)
    return ok(message="User reactivated successfully")


@router.put(
    "/users/{user_id}/reset-password",
    response_model=ApiResponse[PasswordReset],
    summary="Reset a user's password",
    description="Sets a generated temporary password and returns it once",
)
def reset_password(
    user_id: int = Path(..., gt=0, le=MAX_ID),
    current_user: ResolvedIdentity = Depends(require_permission("users.reset_password")),
    users: UserService = Depends(get_user_service),
):
    return ok(users.reset_password(current_user.id, user_id), "Password reset successfully")
