from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from hardware_store.core import permissions
from hardware_store.core.errors import MissingCredentialsError
from hardware_store.core.identity import IdentityResolver, ResolvedIdentity
from hardware_store.core.security import TokenService, extract_token_from_header
from hardware_store.database import get_db
from hardware_store.services.catalog_service import CatalogService
from hardware_store.services.image_service import ImageService
from hardware_store.services.user_service import UserService


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_identity_resolver(request: Request) -> IdentityResolver:
    return request.app.state.identity_resolver


def get_catalog_service(request: Request) -> CatalogService:
    return CatalogService(request.app.state.database)


def get_user_service(request: Request) -> UserService:
    return UserService(request.app.state.database, request.app.state.token_service)


def get_image_service(request: Request) -> ImageService:
    return ImageService(request.app.state.database, request.app.state.image_storage)


def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    return extract_token_from_header(authorization)


def get_current_user(
    token: Optional[str] = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> ResolvedIdentity:
    """
    Dependency to get the current authenticated user.
    Validates the bearer token and re-checks the user is still active.
    """
    if not token:
        raise MissingCredentialsError(
            "Authentication token required",
            details=["Provide a valid token in the Authorization header"],
        )
    return resolver.resolve(db, token)


def get_optional_user(
    token: Optional[str] = Depends(get_bearer_token),
    db: Session = Depends(get_db),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Optional[ResolvedIdentity]:
    return resolver.resolve_optional(db, token)


def require_permission(operation: str):
    """
    Dependency factory guarding an operation listed in the permission table.
    Usage: Depends(require_permission("categories.create"))
    """
    # Unknown operations fail at import time, not on the first request
    permissions.PERMISSIONS[operation]

    def permission_checker(current_user: ResolvedIdentity = Depends(get_current_user)) -> ResolvedIdentity:
        permissions.require_permission(current_user, operation)
        return current_user
    return permission_checker
