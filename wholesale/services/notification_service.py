"""Unread counters and recent-item lists for the notification bell."""
from datetime import datetime
from wholesale.models import (
    Order,
    Inquiry,
    InquiryType,
    InquiryStatus,
    Wholesaler,
    WholesalerStatus,
    CSThread,
    CSThreadStatus,
    Retailer,
)
from wholesale.services.cache_service import invalidate
from wholesale.services.gateway import Not, In
from wholesale.services.order_service import ORDER_LIST_PATH
import logging

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5


def _unread_inquiry_filters(wholesaler_id):
    # "Unread" here is anything not answered, closed inquiries included.
    return {
        'inquiry_type': InquiryType.RETAILER_TO_WHOLESALER,
        'wholesaler_id': wholesaler_id,
        'status': Not(InquiryStatus.ANSWERED),
    }


def unread_order_count(gateway, wholesaler_id):
    return gateway.count(
        Order, {'wholesaler_id': wholesaler_id, 'wholesaler_read_at': None})


def recent_order_notifications(gateway, wholesaler_id, limit=DEFAULT_LIMIT):
    orders = gateway.select(
        Order,
        {'wholesaler_id': wholesaler_id},
        order_by='created_at',
        descending=True,
        limit=limit,
    )
    return [
        {
            'id': order.id,
            'order_number': order.order_number,
            'status': order.status.value,
            'total_amount': order.total_amount,
            'created_at': order.created_at.isoformat(),
            'is_read': order.wholesaler_read_at is not None,
        }
        for order in orders
    ]


def mark_all_orders_read(gateway, wholesaler_id, now=None):
    """Stamp every unread order; returns how many rows changed."""
    updated = gateway.update_where(
        Order,
        {'wholesaler_id': wholesaler_id, 'wholesaler_read_at': None},
        wholesaler_read_at=now or datetime.utcnow(),
    )
    if updated:
        logger.info("Marked %d orders read for wholesaler %s",
                    len(updated), wholesaler_id)
        refreshed = invalidate(ORDER_LIST_PATH)
        if not refreshed.ok:
            logger.warning("Order list refresh failed: %s", refreshed.error)
    return len(updated)


def unread_inquiry_count(gateway, wholesaler_id):
    return gateway.count(Inquiry, _unread_inquiry_filters(wholesaler_id))


def recent_inquiry_notifications(gateway, wholesaler_id,
                                 limit=DEFAULT_LIMIT):
    inquiries = gateway.select(
        Inquiry,
        _unread_inquiry_filters(wholesaler_id),
        order_by='created_at',
        descending=True,
        limit=limit,
    )
    profile_ids = {i.user_id for i in inquiries}
    codes = {}
    if profile_ids:
        for retailer in gateway.select(
                Retailer, {'profile_id': In(profile_ids)}):
            codes.setdefault(retailer.profile_id, retailer.anonymous_code)
    return [
        {
            'id': inquiry.id,
            'title': inquiry.title,
            'status': inquiry.status.value,
            'created_at': inquiry.created_at.isoformat(),
            'retailer_code': codes.get(inquiry.user_id),
        }
        for inquiry in inquiries
    ]


def wholesaler_notifications(gateway, wholesaler_id, limit=DEFAULT_LIMIT):
    return {
        'unread_orders': unread_order_count(gateway, wholesaler_id),
        'recent_orders': recent_order_notifications(
            gateway, wholesaler_id, limit),
        'unread_inquiries': unread_inquiry_count(gateway, wholesaler_id),
        'recent_inquiries': recent_inquiry_notifications(
            gateway, wholesaler_id, limit),
    }


def admin_notification_stats(gateway):
    return {
        'pending_wholesalers': gateway.count(
            Wholesaler, {'status': WholesalerStatus.PENDING}),
        'open_wholesaler_inquiries': gateway.count(Inquiry, {
            'inquiry_type': InquiryType.WHOLESALER_TO_ADMIN,
            'status': InquiryStatus.OPEN,
        }),
        'open_retailer_inquiries': gateway.count(Inquiry, {
            'inquiry_type': InquiryType.RETAILER_TO_ADMIN,
            'status': InquiryStatus.OPEN,
        }),
        'open_cs_threads': gateway.count(CSThread, {
            'status': In([
                CSThreadStatus.OPEN,
                CSThreadStatus.ESCALATED,
            ]),
        }),
    }
