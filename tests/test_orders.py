from datetime import datetime, timedelta
from unittest.mock import patch
import pytest

from wholesale.errors import Forbidden, NotFound, ValidationError
from wholesale.models import (
    Inquiry,
    InquiryStatus,
    InquiryType,
    Order,
    OrderStatus,
    Settlement,
)
from wholesale.services import (
    notification_service,
    order_service,
    settlement_service,
)
from wholesale.services.settlement_service import create_settlement


class TestUpdateOrderStatus:

    def test_owner_updates_status(self, gateway, world, caller_of,
                                  new_order):
        order = new_order(gateway, world.a_id)
        updated = order_service.update_order_status(
            gateway, caller_of(world.a_profile), order.id, 'confirmed')
        assert updated.status == OrderStatus.CONFIRMED
        assert updated.delivered_at is None

    def test_other_wholesaler_forbidden(self, gateway, world, caller_of,
                                        new_order):
        order = new_order(gateway, world.b_id)
        with pytest.raises(Forbidden):
            order_service.update_order_status(
                gateway, caller_of(world.a_profile), order.id, 'shipping')

        gateway.session.expire_all()
        assert gateway.get(Order, order.id).status == OrderStatus.PENDING

    def test_any_transition_accepted(self, gateway, world, caller_of,
                                     new_order):
        order = new_order(gateway, world.a_id, status=OrderStatus.DELIVERED)
        updated = order_service.update_order_status(
            gateway, caller_of(world.a_profile), order.id, 'pending')
        assert updated.status == OrderStatus.PENDING

    def test_unknown_status(self, gateway, world, caller_of, new_order):
        order = new_order(gateway, world.a_id)
        with pytest.raises(ValidationError):
            order_service.update_order_status(
                gateway, caller_of(world.a_profile), order.id, 'lost')

    def test_missing_order(self, gateway, world, caller_of):
        with pytest.raises(NotFound):
            order_service.update_order_status(
                gateway, caller_of(world.admin_profile), 555, 'confirmed')

    def test_pending_wholesaler_forbidden(self, gateway, world, caller_of,
                                          new_order):
        order = new_order(gateway, world.pending_id)
        with pytest.raises(Forbidden):
            order_service.update_order_status(
                gateway, caller_of(world.pending_profile), order.id,
                'confirmed')

    def test_delivery_schedules_payout(self, gateway, world, caller_of,
                                       new_order):
        order = new_order(gateway, world.a_id)
        settlement = create_settlement(gateway, order)
        delivered = datetime(2025, 3, 10, 12, 0)

        updated = order_service.update_order_status(
            gateway, caller_of(world.a_profile), order.id, 'delivered',
            now=delivered)

        assert updated.delivered_at == delivered
        assert gateway.get(Settlement, settlement.id).scheduled_payout_at \
            == delivered + timedelta(days=7)

    def test_payout_scheduling_refreshes_settlement_views(
            self, gateway, world, caller_of, new_order):
        order = new_order(gateway, world.a_id)
        create_settlement(gateway, order)
        with patch(
                'wholesale.services.settlement_service.invalidate') as inv:
            order_service.update_order_status(
                gateway, caller_of(world.a_profile), order.id, 'delivered')
        inv.assert_called_once_with(
            settlement_service.SETTLEMENT_LIST_PATH,
            settlement_service.SETTLEMENT_STATS_PATH)

    def test_payout_failure_does_not_block_delivery(
            self, gateway, world, caller_of, new_order):
        order = new_order(gateway, world.a_id)
        with patch('wholesale.services.order_service.schedule_payout',
                   side_effect=RuntimeError('settlement store down')):
            updated = order_service.update_order_status(
                gateway, caller_of(world.a_profile), order.id, 'delivered')
        assert updated.status == OrderStatus.DELIVERED

    def test_invalidates_list_and_detail(self, gateway, world, caller_of,
                                         new_order):
        order = new_order(gateway, world.a_id)
        with patch('wholesale.services.order_service.invalidate') as inv:
            order_service.update_order_status(
                gateway, caller_of(world.a_profile), order.id, 'preparing')
        paths = [c.args[0] for c in inv.call_args_list]
        assert paths == [
            order_service.ORDER_LIST_PATH,
            order_service.order_detail_path(order.id),
        ]


class TestListOrders:

    def test_scoped_with_status_counts(self, gateway, world, caller_of,
                                       new_order):
        new_order(gateway, world.a_id, status=OrderStatus.PENDING)
        new_order(gateway, world.a_id, status=OrderStatus.SHIPPING)
        new_order(gateway, world.a_id, status=OrderStatus.SHIPPING)
        new_order(gateway, world.b_id, status=OrderStatus.SHIPPING)

        result = order_service.list_orders(
            gateway, caller_of(world.a_profile), status='shipping')
        assert result['total'] == 2
        assert all(o.wholesaler_id == world.a_id for o in result['items'])
        counts = result['status_counts']
        assert counts['all'] == 3
        assert counts['pending'] == 1
        assert counts['shipping'] == 2
        assert counts['delivered'] == 0

    def test_admin_sees_everything(self, gateway, world, caller_of,
                                   new_order):
        new_order(gateway, world.a_id)
        new_order(gateway, world.b_id)
        result = order_service.list_orders(
            gateway, caller_of(world.admin_profile))
        assert result['total'] == 2

    def test_multiple_statuses(self, gateway, world, caller_of, new_order):
        new_order(gateway, world.a_id, status=OrderStatus.PENDING)
        new_order(gateway, world.a_id, status=OrderStatus.CONFIRMED)
        new_order(gateway, world.a_id, status=OrderStatus.CANCELLED)
        result = order_service.list_orders(
            gateway, caller_of(world.a_profile),
            statuses=['pending', 'confirmed'])
        assert result['total'] == 2

    def test_customer_name_search(self, gateway, world, caller_of,
                                  new_order):
        new_order(gateway, world.a_id, retailer_id=world.retailer_id)
        new_order(gateway, world.a_id)
        result = order_service.list_orders(
            gateway, caller_of(world.a_profile), customer_name='bistro')
        assert result['total'] == 1
        serialized = order_service.serialize_order(result['items'][0])
        assert serialized['retailer_code'] == 'R-0001'

    def test_date_range(self, gateway, world, caller_of, new_order):
        new_order(gateway, world.a_id, created_at=datetime(2025, 1, 5))
        new_order(gateway, world.a_id, created_at=datetime(2025, 2, 5))
        result = order_service.list_orders(
            gateway, caller_of(world.a_profile),
            start_date=datetime(2025, 2, 1),
            end_date=datetime(2025, 2, 28, 23, 59))
        assert result['total'] == 1

    def test_get_order_of_other_wholesaler(self, gateway, world, caller_of,
                                           new_order):
        order = new_order(gateway, world.b_id)
        with pytest.raises(Forbidden):
            order_service.get_order(
                gateway, caller_of(world.a_profile), order.id)

    def test_stats(self, gateway, world, caller_of, new_order):
        now = datetime(2025, 3, 1, 15, 0)
        new_order(gateway, world.a_id, amount=1000,
                  status=OrderStatus.DELIVERED,
                  created_at=datetime(2025, 2, 1))
        new_order(gateway, world.a_id, amount=2500,
                  created_at=datetime(2025, 3, 1, 9, 0))
        new_order(gateway, world.b_id, amount=9999,
                  created_at=datetime(2025, 3, 1, 9, 0))

        stats = order_service.order_stats(
            gateway, caller_of(world.a_profile), now=now)
        assert stats['total_orders'] == 2
        assert stats['total_amount'] == 3500
        assert stats['today_orders'] == 1
        assert stats['today_amount'] == 2500
        assert stats['delivered_count'] == 1
        assert stats['pending_amount'] == 2500


class TestOrderNotifications:

    def test_unread_count_and_recent(self, gateway, world, new_order):
        new_order(gateway, world.a_id, created_at=datetime(2025, 1, 1))
        latest = new_order(
            gateway, world.a_id, created_at=datetime(2025, 1, 2))
        new_order(gateway, world.b_id)

        assert notification_service.unread_order_count(
            gateway, world.a_id) == 2
        recent = notification_service.recent_order_notifications(
            gateway, world.a_id, limit=1)
        assert [r['id'] for r in recent] == [latest.id]
        assert recent[0]['is_read'] is False

    def test_mark_all_read_is_idempotent(self, gateway, world, new_order):
        new_order(gateway, world.a_id)
        new_order(gateway, world.a_id)
        new_order(gateway, world.b_id)

        assert notification_service.mark_all_orders_read(
            gateway, world.a_id) == 2
        assert notification_service.mark_all_orders_read(
            gateway, world.a_id) == 0
        assert notification_service.unread_order_count(
            gateway, world.a_id) == 0
        assert notification_service.unread_order_count(
            gateway, world.b_id) == 1

    def test_mark_all_read_refreshes_order_list(
            self, gateway, world, new_order):
        new_order(gateway, world.a_id)
        with patch(
                'wholesale.services.notification_service.invalidate') as inv:
            notification_service.mark_all_orders_read(gateway, world.a_id)
            notification_service.mark_all_orders_read(gateway, world.a_id)
        # Nothing changed the second time.
        inv.assert_called_once_with(order_service.ORDER_LIST_PATH)

    def test_unread_inquiries_exclude_only_answered(
            self, gateway, world):
        for status in InquiryStatus:
            gateway.insert(
                Inquiry,
                user_id=world.retailer_profile,
                inquiry_type=InquiryType.RETAILER_TO_WHOLESALER,
                wholesaler_id=world.a_id,
                title=f'{status.value} question',
                content='Is this item available in bulk?',
                status=status,
            )
        gateway.insert(
            Inquiry,
            user_id=world.a_profile,
            inquiry_type=InquiryType.WHOLESALER_TO_ADMIN,
            title='Platform question',
            content='How do I change my payout account?',
        )

        assert notification_service.unread_inquiry_count(
            gateway, world.a_id) == 2
        recent = notification_service.recent_inquiry_notifications(
            gateway, world.a_id)
        assert {r['status'] for r in recent} == {'open', 'closed'}
        assert {r['retailer_code'] for r in recent} == {'R-0001'}

    def test_admin_stats(self, gateway, world):
        stats = notification_service.admin_notification_stats(gateway)
        assert stats['pending_wholesalers'] == 1
        assert stats['open_wholesaler_inquiries'] == 0
        assert stats['open_cs_threads'] == 0
