"""Wholesaler approval, rejection, suspension and account removal."""
from datetime import datetime
from wholesale.models import (
    Profile,
    Wholesaler,
    Retailer,
    Order,
    Settlement,
    AccountDeletion,
    WholesalerStatus,
    RetailerStatus,
)
from wholesale.services.authz import require_admin, WHOLESALER
from wholesale.services.audit_service import record_audit
from wholesale.services.cache_service import invalidate
from wholesale.services.gateway import Search
from wholesale.services.side_effects import attempt
from wholesale.errors import NotFound, Forbidden, Conflict, ValidationError
from wholesale.utils import require_text
import logging

logger = logging.getLogger(__name__)

PENDING_LIST_PATH = '/admin/wholesalers/pending'
WHOLESALER_LIST_PATH = '/admin/wholesalers'
MIN_REASON_LENGTH = 10


def _reason(reason):
    return require_text(reason, 'Reason', min_length=MIN_REASON_LENGTH)


def _get_wholesaler(gateway, wholesaler_id):
    wholesaler = gateway.get(Wholesaler, wholesaler_id)
    if wholesaler is None:
        raise NotFound('Wholesaler not found')
    return wholesaler


def _get_retailer(gateway, retailer_id):
    retailer = gateway.get(Retailer, retailer_id)
    if retailer is None:
        raise NotFound('Retailer not found')
    return retailer


def _log_outcome(label, outcome):
    if not outcome.ok:
        logger.warning("%s did not complete: %s", label, outcome.error)


def serialize_wholesaler(wholesaler):
    return {
        'id': wholesaler.id,
        'profile_id': wholesaler.profile_id,
        'business_name': wholesaler.business_name,
        'status': wholesaler.status.value,
        'rejection_reason': wholesaler.rejection_reason,
        'suspension_reason': wholesaler.suspension_reason,
        'approved_at': (
            wholesaler.approved_at.isoformat()
            if wholesaler.approved_at else None
        ),
        'created_at': wholesaler.created_at.isoformat(),
    }


def serialize_retailer(retailer):
    return {
        'id': retailer.id,
        'profile_id': retailer.profile_id,
        'business_name': retailer.business_name,
        'anonymous_code': retailer.anonymous_code,
        'status': retailer.status.value,
        'suspension_reason': retailer.suspension_reason,
        'created_at': retailer.created_at.isoformat(),
    }


def approve_wholesaler(gateway, caller, wholesaler_id, now=None):
    require_admin(caller)
    _get_wholesaler(gateway, wholesaler_id)
    now = now or datetime.utcnow()

    wholesaler = gateway.update(
        Wholesaler,
        wholesaler_id,
        status=WholesalerStatus.APPROVED,
        approved_at=now,
        rejection_reason=None,
        suspension_reason=None,
    )
    logger.info("Wholesaler %s approved by profile %s",
                wholesaler_id, caller.profile_id)

    _log_outcome('Approval audit', record_audit(
        gateway,
        caller.profile_id,
        'wholesaler_approve',
        'wholesaler',
        wholesaler_id,
        {'wholesaler_id': wholesaler_id, 'approved_at': now.isoformat()},
    ))
    _log_outcome('Pending list refresh',
                 invalidate(PENDING_LIST_PATH, WHOLESALER_LIST_PATH))
    return wholesaler


def reject_wholesaler(gateway, caller, wholesaler_id, reason):
    require_admin(caller)
    reason = _reason(reason)
    current = _get_wholesaler(gateway, wholesaler_id)
    profile_id = current.profile_id

    wholesaler = gateway.update(
        Wholesaler,
        wholesaler_id,
        status=WholesalerStatus.REJECTED,
        rejection_reason=reason,
        approved_at=None,
        suspension_reason=None,
    )
    logger.info("Wholesaler %s rejected by profile %s",
                wholesaler_id, caller.profile_id)

    # Clearing the role sends the owner back through onboarding.
    role_reset = attempt(
        'role reset',
        gateway.update,
        Profile,
        profile_id,
        role=None,
    )
    _log_outcome('Role reset', role_reset)

    _log_outcome('Rejection audit', record_audit(
        gateway,
        caller.profile_id,
        'wholesaler_reject',
        'wholesaler',
        wholesaler_id,
        {
            'wholesaler_id': wholesaler_id,
            'rejection_reason': reason,
            'role_reset': role_reset.ok,
        },
    ))
    _log_outcome('Pending list refresh',
                 invalidate(PENDING_LIST_PATH, WHOLESALER_LIST_PATH))
    return wholesaler


def suspend_wholesaler(gateway, caller, wholesaler_id, reason):
    require_admin(caller)
    reason = _reason(reason)
    current = _get_wholesaler(gateway, wholesaler_id)
    if current.status == WholesalerStatus.SUSPENDED:
        raise Conflict('Wholesaler is already suspended')
    previous_status = current.status.value

    wholesaler = gateway.update(
        Wholesaler,
        wholesaler_id,
        status=WholesalerStatus.SUSPENDED,
        suspension_reason=reason,
    )
    _log_outcome('Suspension audit', record_audit(
        gateway,
        caller.profile_id,
        'wholesaler_suspend',
        'wholesaler',
        wholesaler_id,
        {
            'wholesaler_id': wholesaler_id,
            'previous_status': previous_status,
            'suspension_reason': reason,
        },
    ))
    _log_outcome('Wholesaler list refresh', invalidate(WHOLESALER_LIST_PATH))
    return wholesaler


def unsuspend_wholesaler(gateway, caller, wholesaler_id):
    require_admin(caller)
    current = _get_wholesaler(gateway, wholesaler_id)
    if current.status != WholesalerStatus.SUSPENDED:
        raise Conflict('Wholesaler is not suspended')

    wholesaler = gateway.update(
        Wholesaler,
        wholesaler_id,
        status=WholesalerStatus.APPROVED,
        suspension_reason=None,
    )
    _log_outcome('Unsuspension audit', record_audit(
        gateway,
        caller.profile_id,
        'wholesaler_unsuspend',
        'wholesaler',
        wholesaler_id,
        {'wholesaler_id': wholesaler_id},
    ))
    _log_outcome('Wholesaler list refresh', invalidate(WHOLESALER_LIST_PATH))
    return wholesaler


def suspend_retailer(gateway, caller, retailer_id, reason):
    require_admin(caller)
    reason = _reason(reason)
    current = _get_retailer(gateway, retailer_id)
    if current.status == RetailerStatus.SUSPENDED:
        raise Conflict('Retailer is already suspended')
    previous_status = current.status.value

    retailer = gateway.update(
        Retailer,
        retailer_id,
        status=RetailerStatus.SUSPENDED,
        suspension_reason=reason,
    )
    _log_outcome('Suspension audit', record_audit(
        gateway,
        caller.profile_id,
        'retailer_suspend',
        'retailer',
        retailer_id,
        {
            'retailer_id': retailer_id,
            'previous_status': previous_status,
            'suspension_reason': reason,
        },
    ))
    return retailer


def unsuspend_retailer(gateway, caller, retailer_id):
    require_admin(caller)
    current = _get_retailer(gateway, retailer_id)
    if current.status != RetailerStatus.SUSPENDED:
        raise Conflict('Retailer is not suspended')

    retailer = gateway.update(
        Retailer,
        retailer_id,
        status=RetailerStatus.ACTIVE,
        suspension_reason=None,
    )
    _log_outcome('Unsuspension audit', record_audit(
        gateway,
        caller.profile_id,
        'retailer_unsuspend',
        'retailer',
        retailer_id,
        {'retailer_id': retailer_id},
    ))
    return retailer


def list_pending_wholesalers(gateway, caller, page=1, per_page=20):
    require_admin(caller)
    return gateway.paginate(
        Wholesaler,
        {'status': WholesalerStatus.PENDING},
        order_by='created_at',
        descending=False,
        page=page,
        per_page=per_page,
    )


def list_wholesalers(gateway, caller, status=None, search=None, page=1,
                     per_page=20):
    require_admin(caller)
    filters = {}
    if status:
        try:
            filters['status'] = WholesalerStatus(status)
        except ValueError:
            raise ValidationError(f'Unknown wholesaler status: {status}')
    if search:
        filters['_search'] = Search(search, 'business_name')
    return gateway.paginate(
        Wholesaler, filters, page=page, per_page=per_page)


def _own_wholesaler(gateway, caller):
    # Rejection clears the role, so look the account up by profile.
    if caller.role not in (WHOLESALER, None):
        raise Forbidden('Only wholesalers have a wholesaler account')
    wholesaler = gateway.first(
        Wholesaler, {'profile_id': caller.profile_id}, order_by='id')
    if wholesaler is None:
        raise NotFound('Wholesaler not found')
    return wholesaler


def get_wholesaler_status(gateway, caller):
    return _own_wholesaler(gateway, caller)


def delete_account(gateway, identity_provider, caller, reason,
                   feedback=None):
    """Remove a wholesaler's identity and profile.

    Refused while any order or settlement references the wholesaler.
    The deletion record is written first so the reason survives even if
    the profile cascade later fails.
    """
    wholesaler_id = _own_wholesaler(gateway, caller).id
    reason = require_text(reason, 'Reason', min_length=1, max_length=200)
    feedback = (feedback or '').strip() or None

    if gateway.count(Order, {'wholesaler_id': wholesaler_id}):
        raise ValidationError(
            'Accounts with orders cannot be deleted')
    if gateway.count(Settlement, {'wholesaler_id': wholesaler_id}):
        raise ValidationError(
            'Accounts with settlements cannot be deleted')

    profile = gateway.get(Profile, caller.profile_id)
    if profile is None:
        raise NotFound('Profile not found')
    external_user_id = profile.external_user_id

    _log_outcome('Deletion record', attempt(
        'deletion record',
        gateway.insert,
        AccountDeletion,
        profile_id=caller.profile_id,
        reason=reason,
        feedback=feedback,
    ))

    identity_provider.delete_identity(external_user_id)

    profile_removed = attempt(
        'profile removal', gateway.delete, Profile, caller.profile_id)
    _log_outcome('Profile removal', profile_removed)

    logger.info("Account of wholesaler %s deleted (profile %s)",
                wholesaler_id, caller.profile_id)
    _log_outcome('Deletion audit', record_audit(
        gateway,
        None,
        'account_delete',
        'wholesaler',
        wholesaler_id,
        {
            'profile_id': caller.profile_id,
            'reason': reason,
            'profile_removed': profile_removed.ok,
        },
    ))
    _log_outcome('Wholesaler list refresh',
                 invalidate(PENDING_LIST_PATH, WHOLESALER_LIST_PATH))
    return profile_removed
