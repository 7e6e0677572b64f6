from datetime import datetime, time
from wholesale.models import Order, OrderStatus, Retailer
from wholesale.services.authz import (
    require_role,
    check_owner,
    ADMIN,
    WHOLESALER,
)
from wholesale.services.cache_service import invalidate
from wholesale.services.settlement_service import schedule_payout
from wholesale.services.side_effects import attempt
from wholesale.services.gateway import Between, In, Search
from wholesale.errors import NotFound, ValidationError
import logging

logger = logging.getLogger(__name__)

ORDER_LIST_PATH = '/wholesaler/orders'


def order_detail_path(order_id):
    return f'/wholesaler/orders/{order_id}'


def _parse_status(value):
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(f'Unknown order status: {value}')


def serialize_order(order):
    return {
        'id': order.id,
        'order_number': order.order_number,
        'wholesaler_id': order.wholesaler_id,
        'retailer_id': order.retailer_id,
        'retailer_code': (
            order.retailer.anonymous_code if order.retailer else None
        ),
        'status': order.status.value,
        'total_amount': order.total_amount,
        'is_read': order.wholesaler_read_at is not None,
        'delivered_at': (
            order.delivered_at.isoformat() if order.delivered_at else None
        ),
        'created_at': order.created_at.isoformat(),
        'updated_at': order.updated_at.isoformat(),
    }


def update_order_status(gateway, caller, order_id, new_status, now=None):
    """Move an order to ``new_status``.

    Any known status is accepted from any other; there is no transition
    table and no concurrency check, so the last write wins.
    """
    require_role(caller, WHOLESALER, ADMIN)
    status = _parse_status(new_status)
    order = gateway.get(Order, order_id)
    if order is None:
        raise NotFound('Order not found')
    check_owner(caller, order.wholesaler_id)
    previous_status = order.status.value

    values = {'status': status}
    if status == OrderStatus.DELIVERED:
        values['delivered_at'] = now or datetime.utcnow()
    order = gateway.update(Order, order_id, **values)
    logger.info(
        "Order %s status %s -> %s by profile %s",
        order_id,
        previous_status,
        status.value,
        caller.profile_id,
    )

    if status == OrderStatus.DELIVERED:
        scheduled = attempt(
            'payout scheduling',
            schedule_payout,
            gateway,
            order_id,
            values['delivered_at'],
        )
        if not scheduled.ok:
            logger.warning("Payout for order %s not scheduled: %s",
                           order_id, scheduled.error)

    for path in (ORDER_LIST_PATH, order_detail_path(order_id)):
        outcome = invalidate(path)
        if not outcome.ok:
            logger.warning("Cache refresh for %s failed: %s",
                           path, outcome.error)
    return order


def _order_filters(gateway, caller, start_date=None, end_date=None,
                   order_number=None, customer_name=None):
    filters = {}
    if caller.scope is not None:
        filters['wholesaler_id'] = caller.scope
    if start_date or end_date:
        filters['created_at'] = Between(start_date, end_date)
    if order_number:
        filters['order_number'] = order_number.strip()
    if customer_name:
        retailers = gateway.select(
            Retailer, {'_search': Search(customer_name.strip(),
                                         'business_name')})
        filters['retailer_id'] = In(r.id for r in retailers)
    return filters


def list_orders(
        gateway,
        caller,
        status=None,
        statuses=None,
        start_date=None,
        end_date=None,
        order_number=None,
        customer_name=None,
        page=1,
        per_page=20):
    require_role(caller, WHOLESALER, ADMIN)
    base = _order_filters(
        gateway, caller, start_date, end_date, order_number, customer_name)

    filters = dict(base)
    if statuses:
        filters['status'] = In(_parse_status(s) for s in statuses)
    elif status:
        filters['status'] = _parse_status(status)

    result = gateway.paginate(Order, filters, page=page, per_page=per_page)

    # Tab counts ignore the status filter but keep the others.
    counts = {'all': gateway.count(Order, base)}
    for option in OrderStatus:
        counts[option.value] = gateway.count(
            Order, dict(base, status=option))
    result['status_counts'] = counts
    return result


def get_order(gateway, caller, order_id):
    require_role(caller, WHOLESALER, ADMIN)
    order = gateway.get(Order, order_id)
    if order is None:
        raise NotFound('Order not found')
    check_owner(caller, order.wholesaler_id)
    return order


def order_stats(gateway, caller, start_date=None, end_date=None, now=None):
    require_role(caller, WHOLESALER, ADMIN)
    orders = gateway.select(
        Order, _order_filters(gateway, caller, start_date, end_date))
    today_start = datetime.combine(
        (now or datetime.utcnow()).date(), time.min)

    stats = {
        'total_orders': len(orders),
        'total_amount': sum(o.total_amount for o in orders),
        'today_orders': 0,
        'today_amount': 0,
    }
    for option in OrderStatus:
        stats[f'{option.value}_count'] = 0
        stats[f'{option.value}_amount'] = 0
    for order in orders:
        key = order.status.value
        stats[f'{key}_count'] += 1
        stats[f'{key}_amount'] += order.total_amount
        if order.created_at >= today_start:
            stats['today_orders'] += 1
            stats['today_amount'] += order.total_amount
    return stats
