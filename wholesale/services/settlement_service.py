"""Settlement derivation, status changes and wholesaler-facing views.

A pending settlement whose payout date is before today is shown as
completed (with ``completed_at`` defaulting to the payout date). This is a
read-time presentation; the stored row keeps its status until someone
updates it.
"""
from collections import namedtuple
from datetime import datetime, timedelta, time
from decimal import Decimal, ROUND_FLOOR
from flask import current_app, has_app_context
from wholesale.models import Settlement, SettlementStatus
from wholesale.services.authz import (
    require_role,
    check_owner,
    ADMIN,
    WHOLESALER,
)
from wholesale.services.audit_service import record_audit
from wholesale.services.cache_service import invalidate
from wholesale.services.gateway import Between
from wholesale.errors import NotFound, Conflict, ValidationError
import logging

logger = logging.getLogger(__name__)

SETTLEMENT_LIST_PATH = '/wholesaler/settlements'
SETTLEMENT_STATS_PATH = '/wholesaler/settlements/stats'
SORTABLE_FIELDS = (
    'created_at',
    'scheduled_payout_at',
    'order_amount',
    'wholesaler_amount',
)

# Matches the platform_fee_rate column scale.
RATE_PRECISION = Decimal('0.0001')

SettlementCalculation = namedtuple('SettlementCalculation', [
    'order_amount',
    'platform_fee_rate',
    'platform_fee',
    'wholesaler_amount',
    'scheduled_payout_at',
])


def _config(key, default):
    if has_app_context():
        return current_app.config.get(key, default)
    return default


def calculate_settlement(order_amount, fee_rate, delivered_at=None,
                         payout_delay_days=7):
    """Split an order amount into platform fee and wholesaler payout.

    The fee is floored to the smallest currency unit using exact decimal
    arithmetic, so ``platform_fee + wholesaler_amount == order_amount``
    always holds.
    """
    if isinstance(order_amount, bool) or not isinstance(order_amount, int):
        raise ValidationError('Order amount must be an integer')
    if order_amount < 0:
        raise ValidationError('Order amount must not be negative')
    rate = Decimal(str(fee_rate))
    if rate < 0 or rate > 1:
        raise ValidationError('Fee rate must be between 0 and 1')
    if rate != rate.quantize(RATE_PRECISION):
        raise ValidationError('Fee rate allows at most 4 decimal places')

    platform_fee = int(
        (Decimal(order_amount) * rate).to_integral_value(rounding=ROUND_FLOOR)
    )
    scheduled_payout_at = None
    if delivered_at is not None:
        scheduled_payout_at = delivered_at + timedelta(days=payout_delay_days)

    return SettlementCalculation(
        order_amount=order_amount,
        platform_fee_rate=rate,
        platform_fee=platform_fee,
        wholesaler_amount=order_amount - platform_fee,
        scheduled_payout_at=scheduled_payout_at,
    )


def create_settlement(gateway, order, fee_rate=None):
    if gateway.first(Settlement, {'order_id': order.id}) is not None:
        raise Conflict('Settlement already exists for this order')
    if fee_rate is None:
        fee_rate = _config('PLATFORM_FEE_RATE', 0.05)

    calc = calculate_settlement(
        order.total_amount,
        fee_rate,
        delivered_at=order.delivered_at,
        payout_delay_days=_config('PAYOUT_DELAY_DAYS', 7),
    )
    settlement = gateway.insert(
        Settlement,
        order_id=order.id,
        wholesaler_id=order.wholesaler_id,
        order_amount=calc.order_amount,
        platform_fee_rate=calc.platform_fee_rate,
        platform_fee=calc.platform_fee,
        wholesaler_amount=calc.wholesaler_amount,
        status=SettlementStatus.PENDING,
        scheduled_payout_at=calc.scheduled_payout_at,
    )
    logger.info(
        "Settlement %s created for order %s: fee=%s payout=%s",
        settlement.id,
        order.id,
        calc.platform_fee,
        calc.wholesaler_amount,
    )
    return settlement


def schedule_payout(gateway, order_id, delivered_at):
    """Fix the payout date of an order's settlement once it is delivered."""
    settlement = gateway.first(Settlement, {'order_id': order_id})
    if settlement is None or settlement.scheduled_payout_at is not None:
        return None
    payout_at = delivered_at + timedelta(
        days=_config('PAYOUT_DELAY_DAYS', 7))
    settlement = gateway.update(
        Settlement, settlement.id, scheduled_payout_at=payout_at)
    refreshed = invalidate(SETTLEMENT_LIST_PATH, SETTLEMENT_STATS_PATH)
    if not refreshed.ok:
        logger.warning("Settlement list refresh failed: %s", refreshed.error)
    return settlement


def update_settlement_status(gateway, caller, settlement_id, new_status,
                             now=None):
    require_role(caller, WHOLESALER, ADMIN)
    try:
        status = SettlementStatus(new_status)
    except ValueError:
        raise ValidationError(
            'Settlement status must be pending or completed')

    settlement = gateway.get(Settlement, settlement_id)
    if settlement is None:
        raise NotFound('Settlement not found')
    check_owner(caller, settlement.wholesaler_id)
    previous_status = settlement.status.value

    now = now or datetime.utcnow()
    settlement = gateway.update(
        Settlement,
        settlement_id,
        status=status,
        completed_at=now if status == SettlementStatus.COMPLETED else None,
    )
    logger.info(
        "Settlement %s status %s -> %s by profile %s",
        settlement_id,
        previous_status,
        status.value,
        caller.profile_id,
    )

    audit = record_audit(
        gateway,
        caller.profile_id,
        'settlement_status_update',
        'settlement',
        settlement_id,
        {'previous_status': previous_status, 'new_status': status.value},
    )
    if not audit.ok:
        logger.warning("Settlement audit not written: %s", audit.error)
    refreshed = invalidate(SETTLEMENT_LIST_PATH, SETTLEMENT_STATS_PATH)
    if not refreshed.ok:
        logger.warning("Settlement list refresh failed: %s", refreshed.error)
    return settlement


def _start_of_today(today):
    if today is None:
        return datetime.combine(datetime.utcnow().date(), time.min)
    if isinstance(today, datetime):
        return datetime.combine(today.date(), time.min)
    return datetime.combine(today, time.min)


def serialize_settlement(settlement):
    """Serialize a settlement exactly as stored."""
    payout_at = settlement.scheduled_payout_at
    completed_at = settlement.completed_at
    return {
        'id': settlement.id,
        'order_id': settlement.order_id,
        'order_number': (
            settlement.order.order_number if settlement.order else None
        ),
        'wholesaler_id': settlement.wholesaler_id,
        'order_amount': settlement.order_amount,
        'platform_fee_rate': float(settlement.platform_fee_rate),
        'platform_fee': settlement.platform_fee,
        'wholesaler_amount': settlement.wholesaler_amount,
        'status': settlement.status.value,
        'scheduled_payout_at': payout_at.isoformat() if payout_at else None,
        'completed_at': completed_at.isoformat() if completed_at else None,
        'created_at': settlement.created_at.isoformat(),
    }


def present_settlement(settlement, today=None):
    """Serialize a settlement as wholesalers see it.

    A pending settlement whose payout date has passed reads as completed.
    Only read paths use this; mutations answer with the stored row.
    """
    data = serialize_settlement(settlement)
    payout_at = settlement.scheduled_payout_at
    if (settlement.status == SettlementStatus.PENDING
            and payout_at is not None and payout_at < _start_of_today(today)):
        completed_at = settlement.completed_at or payout_at
        data['status'] = SettlementStatus.COMPLETED.value
        data['completed_at'] = completed_at.isoformat()
    return data


def _scoped_filters(caller, start_date=None, end_date=None, order_id=None):
    filters = {}
    if caller.scope is not None:
        filters['wholesaler_id'] = caller.scope
    if start_date or end_date:
        filters['scheduled_payout_at'] = Between(start_date, end_date)
    if order_id:
        filters['order_id'] = order_id
    return filters


def list_settlements(
        gateway,
        caller,
        status=None,
        start_date=None,
        end_date=None,
        order_id=None,
        page=1,
        per_page=20,
        sort_by='scheduled_payout_at',
        sort_order='asc',
        today=None):
    require_role(caller, WHOLESALER, ADMIN)
    if status and status not in (s.value for s in SettlementStatus):
        raise ValidationError(f'Unknown settlement status: {status}')
    if sort_by not in SORTABLE_FIELDS:
        raise ValidationError(f'Cannot sort settlements by {sort_by}')
    if sort_order not in ('asc', 'desc'):
        raise ValidationError('sort_order must be asc or desc')

    rows = gateway.select(
        Settlement,
        _scoped_filters(caller, start_date, end_date, order_id),
        order_by=sort_by,
        descending=(sort_order == 'desc'),
    )
    # Status filters apply to what the wholesaler sees, so present first.
    items = [present_settlement(row, today) for row in rows]
    if status:
        items = [item for item in items if item['status'] == status]

    total = len(items)
    start = (page - 1) * per_page
    return {
        'items': items[start:start + per_page],
        'total': total,
        'page': page,
        'pages': -(-total // per_page) if total else 0,
        'per_page': per_page,
    }


def get_settlement(gateway, caller, settlement_id, today=None):
    require_role(caller, WHOLESALER, ADMIN)
    settlement = gateway.get(Settlement, settlement_id)
    if settlement is None:
        raise NotFound('Settlement not found')
    check_owner(caller, settlement.wholesaler_id)
    return present_settlement(settlement, today)


def settlement_stats(gateway, caller, today=None):
    require_role(caller, WHOLESALER, ADMIN)
    rows = gateway.select(Settlement, _scoped_filters(caller))
    stats = {
        'total_count': 0,
        'total_order_amount': 0,
        'total_platform_fee': 0,
        'pending_count': 0,
        'pending_amount': 0,
        'completed_count': 0,
        'completed_amount': 0,
    }
    for row in rows:
        presented = present_settlement(row, today)
        stats['total_count'] += 1
        stats['total_order_amount'] += row.order_amount
        stats['total_platform_fee'] += row.platform_fee
        bucket = presented['status']
        stats[f'{bucket}_count'] += 1
        stats[f'{bucket}_amount'] += row.wholesaler_amount
    return stats
