"""
Role-based permissions.

Every guarded operation is listed in ``PERMISSIONS`` with the full set of
roles allowed to perform it. Roles have no hierarchy: MANAGER is not
implicitly allowed what the other roles are, so adding a role means
revisiting every entry here.
"""
from typing import Dict, FrozenSet, Iterable

from hardware_store.core.errors import AuthorizationError
from hardware_store.core.identity import ResolvedIdentity
from hardware_store.models.user import Role

MANAGER_ONLY = frozenset({Role.MANAGER})

PERMISSIONS: Dict[str, FrozenSet[Role]] = {
    # user accounts
    "users.list": MANAGER_ONLY,
    "users.read": MANAGER_ONLY,  # in addition to the user themself
    "users.create": MANAGER_ONLY,
    "users.deactivate": MANAGER_ONLY,
    "users.reactivate": MANAGER_ONLY,
    "users.reset_password": MANAGER_ONLY,
    # catalog
    "categories.create": MANAGER_ONLY,
    "categories.update": MANAGER_ONLY,
    "categories.archive": MANAGER_ONLY,
    "sub_categories.create": MANAGER_ONLY,
    "sub_categories.update": MANAGER_ONLY,
    "sub_categories.archive": MANAGER_ONLY,
    "products.create": MANAGER_ONLY,
    "products.update": MANAGER_ONLY,
    "products.update_stock": MANAGER_ONLY,
    "products.archive": MANAGER_ONLY,
    # product images
    "images.upload": MANAGER_ONLY,
    "images.delete": MANAGER_ONLY,
}


def _role_names(roles: Iterable[Role]) -> str:
    return ", ".join(sorted(Role(r).value for r in roles))


def require_role(identity: ResolvedIdentity, allowed_roles: Iterable[Role]) -> None:
    allowed = frozenset(allowed_roles)
    if identity.role not in allowed:
        raise AuthorizationError(
            f"Your role ({identity.role.value}) does not allow access to this resource. "
            f"Allowed roles: {_role_names(allowed)}"
        )


def require_self_or_role(
    identity: ResolvedIdentity, target_user_id: int, allowed_roles: Iterable[Role]
) -> None:
    if identity.id == target_user_id:
        return
    allowed = frozenset(allowed_roles)
    if identity.role not in allowed:
        raise AuthorizationError(
            "You can only access your own data or you do not have the required permissions"
        )


def require_permission(identity: ResolvedIdentity, operation: str) -> None:
    require_role(identity, PERMISSIONS[operation])
