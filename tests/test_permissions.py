import pytest

from hardware_store.core.errors import AuthorizationError
from hardware_store.core.identity import ResolvedIdentity
from hardware_store.core.permissions import (
    MANAGER_ONLY,
    PERMISSIONS,
    require_permission,
    require_role,
    require_self_or_role,
)
from hardware_store.models.user import Role

MANAGER = ResolvedIdentity(id=1, username="manager", role=Role.MANAGER)
BUYER = ResolvedIdentity(id=2, username="achat", role=Role.PURCHASE_OFFICER)
CASHIER = ResolvedIdentity(id=3, username="caisse", role=Role.PAYMENT_OFFICER)


@pytest.mark.parametrize("operation", sorted(PERMISSIONS))
def test_manager_allowed_everywhere(operation):
    require_permission(MANAGER, operation)


@pytest.mark.parametrize("identity", [BUYER, CASHIER])
def test_other_roles_refused_catalog_writes(identity):
    with pytest.raises(AuthorizationError) as exc_info:
        require_permission(identity, "products.archive")
    assert "Allowed roles: MANAGER" in exc_info.value.message


def test_membership_is_exact():
    require_role(BUYER, {Role.PURCHASE_OFFICER})
    with pytest.raises(AuthorizationError):
        require_role(MANAGER, {Role.PURCHASE_OFFICER})


def test_self_or_role():
    require_self_or_role(BUYER, BUYER.id, MANAGER_ONLY)
    require_self_or_role(MANAGER, BUYER.id, MANAGER_ONLY)
    with pytest.raises(AuthorizationError):
        require_self_or_role(CASHIER, BUYER.id, MANAGER_ONLY)


def test_unknown_operation():
    with pytest.raises(KeyError):
        require_permission(MANAGER, "orders.launch_rockets")
