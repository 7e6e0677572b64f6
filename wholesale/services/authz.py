from wholesale.models import (
    Profile,
    Wholesaler,
    Retailer,
    UserRole,
    WholesalerStatus,
    RetailerStatus,
)
from wholesale.errors import Unauthenticated, Forbidden
import logging

logger = logging.getLogger(__name__)

ADMIN = UserRole.ADMIN.value
WHOLESALER = UserRole.WHOLESALER.value
RETAILER = UserRole.RETAILER.value
ANY_ROLE = (ADMIN, WHOLESALER, RETAILER)


class Caller:
    """The resolved party behind a request.

    ``scope_id`` is the wholesaler or retailer id the caller acts for;
    admins have none and see every row.
    """

    def __init__(self, profile_id, role=None, scope_id=None,
                 account_status=None):
        self.profile_id = profile_id
        self.role = role
        self.scope_id = scope_id
        self.account_status = account_status

    @property
    def is_admin(self):
        return self.role == ADMIN

    @property
    def scope(self):
        return None if self.is_admin else self.scope_id

    def __repr__(self):
        return (
            f'<Caller profile={self.profile_id} role={self.role} '
            f'scope={self.scope_id}>'
        )


def find_profile(gateway, identity):
    if identity is None:
        return None
    return gateway.first(
        Profile, {'external_user_id': identity.external_user_id})


def resolve_caller(gateway, identity):
    profile = find_profile(gateway, identity)
    if profile is None:
        raise Unauthenticated()
    return caller_for_profile(gateway, profile)


def caller_for_profile(gateway, profile):
    role = profile.role.value if profile.role else None
    scope_id = None
    account_status = None
    if role == WHOLESALER:
        wholesaler = gateway.first(
            Wholesaler, {'profile_id': profile.id}, order_by='id')
        if wholesaler is not None:
            scope_id = wholesaler.id
            account_status = wholesaler.status.value
    elif role == RETAILER:
        retailer = gateway.first(
            Retailer, {'profile_id': profile.id}, order_by='id')
        if retailer is not None:
            scope_id = retailer.id
            account_status = retailer.status.value

    return Caller(profile.id, role, scope_id, account_status)


def require_role(caller, *roles):
    if caller is None:
        raise Unauthenticated()
    if caller.role is None or caller.role not in roles:
        logger.warning(
            "Profile %s attempted an operation for roles %s, current "
            "role: %s",
            caller.profile_id,
            roles,
            caller.role,
        )
        raise Forbidden()
    if caller.role == WHOLESALER:
        if caller.scope_id is None:
            raise Forbidden('No wholesaler account for this profile')
        if caller.account_status != WholesalerStatus.APPROVED.value:
            raise Forbidden('Wholesaler account is not approved')
    if caller.role == RETAILER:
        if caller.scope_id is None:
            raise Forbidden('No retailer account for this profile')
        if caller.account_status == RetailerStatus.SUSPENDED.value:
            raise Forbidden('Retailer account is suspended')
    return caller


def require_admin(caller):
    return require_role(caller, ADMIN)


def check_owner(caller, owner_id):
    if caller.is_admin:
        return
    if owner_id is None or owner_id != caller.scope_id:
        logger.warning(
            "Profile %s (scope %s) denied access to resource owned by %s",
            caller.profile_id,
            caller.scope_id,
            owner_id,
        )
        raise Forbidden('No permission to access this resource')
