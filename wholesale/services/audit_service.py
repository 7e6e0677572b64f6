from flask import request, has_request_context
from wholesale.models import AuditLog
from wholesale.services.authz import require_admin
from wholesale.services.gateway import Between
from wholesale.services.side_effects import attempt
from wholesale.errors import NotFound
import logging
import json

logger = logging.getLogger(__name__)
major_logger = logging.getLogger('major_events')

MAJOR_ACTION_PREFIXES = (
    'wholesaler_',
    'retailer_',
    'account_',
    'settlement_',
)


def _should_log_major(action: str) -> bool:
    if not action:
        return False
    return action.startswith(MAJOR_ACTION_PREFIXES)


def client_ip():
    if not has_request_context():
        return 'unknown'
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()
    real_ip = request.headers.get('X-Real-IP')
    if real_ip:
        return real_ip.strip()
    return request.remote_addr or 'unknown'


def _write_audit(gateway, user_id, action, target_type, target_id, details,
                 ip_address):
    gateway.insert(
        AuditLog,
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details_json=(
            json.dumps(details, ensure_ascii=False, default=str)
            if details else None
        ),
        ip_address=ip_address,
    )

    details_brief = None
    if details is not None:
        details_brief = json.dumps(
            details, ensure_ascii=False, default=str, separators=(',', ':'))
        if len(details_brief) > 600:
            details_brief = details_brief[:600] + '...'

    logger.info(
        "AUDIT action=%s user_id=%s target_type=%s target_id=%s ip=%s "
        "details=%s",
        action,
        user_id,
        target_type,
        target_id,
        ip_address,
        details_brief,
    )
    if _should_log_major(action):
        major_logger.info(
            "action=%s user_id=%s target_type=%s target_id=%s details=%s",
            action,
            user_id,
            target_type,
            target_id,
            details_brief,
        )


def record_audit(
        gateway,
        user_id,
        action,
        target_type=None,
        target_id=None,
        details=None,
        ip_address=None):
    """Append an audit entry. Never raises; returns an ``Outcome``."""
    return attempt(
        f'audit:{action}',
        _write_audit,
        gateway,
        user_id,
        action,
        target_type,
        target_id,
        details,
        ip_address or client_ip(),
    )


def serialize_audit_log(entry):
    return {
        'id': entry.id,
        'user_id': entry.user_id,
        'action': entry.action,
        'target_type': entry.target_type,
        'target_id': entry.target_id,
        'details': entry.get_details(),
        'ip_address': entry.ip_address,
        'created_at': entry.created_at.isoformat(),
    }


def list_audit_logs(
        gateway,
        caller,
        action=None,
        target_type=None,
        user_id=None,
        start_date=None,
        end_date=None,
        page=1,
        per_page=20):
    require_admin(caller)
    filters = {}
    if action:
        filters['action'] = action
    if target_type:
        filters['target_type'] = target_type
    if user_id:
        filters['user_id'] = user_id
    if start_date or end_date:
        filters['created_at'] = Between(start_date, end_date)
    return gateway.paginate(
        AuditLog, filters, page=page, per_page=per_page)


def get_audit_log(gateway, caller, log_id):
    require_admin(caller)
    entry = gateway.get(AuditLog, log_id)
    if entry is None:
        raise NotFound('Audit log entry not found')
    return entry
