from datetime import datetime
from decimal import Decimal
from unittest.mock import patch
import pytest

from wholesale.errors import Conflict, Forbidden, NotFound, ValidationError
from wholesale.models import AuditLog, Settlement, SettlementStatus
from wholesale.services import settlement_service
from wholesale.services.side_effects import Outcome


class TestCalculateSettlement:

    def test_five_percent_of_ten_thousand(self):
        calc = settlement_service.calculate_settlement(10000, 0.05)
        assert calc.platform_fee == 500
        assert calc.wholesaler_amount == 9500
        assert calc.scheduled_payout_at is None

    def test_fee_is_floored(self):
        calc = settlement_service.calculate_settlement(999, 0.05)
        # 49.95 rounds down to 49
        assert calc.platform_fee == 49
        assert calc.wholesaler_amount == 950

    @pytest.mark.parametrize('amount', [0, 1, 7, 333, 10001, 987654321])
    @pytest.mark.parametrize('rate', [0, 0.0333, 0.05, 0.1, 0.5, 1])
    def test_parts_always_add_up(self, amount, rate):
        calc = settlement_service.calculate_settlement(amount, rate)
        assert calc.platform_fee + calc.wholesaler_amount == amount
        assert 0 <= calc.platform_fee <= amount

    def test_payout_is_seven_days_after_delivery(self):
        delivered = datetime(2025, 3, 1, 15, 30)
        calc = settlement_service.calculate_settlement(
            5000, 0.05, delivered_at=delivered)
        assert calc.scheduled_payout_at == datetime(2025, 3, 8, 15, 30)

    def test_rate_kept_as_decimal(self):
        calc = settlement_service.calculate_settlement(100, '0.0375')
        assert calc.platform_fee_rate == Decimal('0.0375')

    def test_trailing_zeros_within_column_scale(self):
        calc = settlement_service.calculate_settlement(10000, '0.050000')
        assert calc.platform_fee == 500

    @pytest.mark.parametrize('amount,rate', [
        (-1, 0.05),
        (100, -0.01),
        (100, 1.5),
        (12.5, 0.05),
        (True, 0.05),
        (100, '0.03333'),
    ])
    def test_rejects_invalid_input(self, amount, rate):
        with pytest.raises(ValidationError):
            settlement_service.calculate_settlement(amount, rate)


class TestCreateSettlement:

    def test_creates_pending_settlement(self, gateway, world, new_order):
        order = new_order(gateway, world.a_id, amount=10000)
        settlement = settlement_service.create_settlement(gateway, order)

        assert settlement.status == SettlementStatus.PENDING
        assert settlement.platform_fee == 500
        assert settlement.wholesaler_amount == 9500
        assert settlement.wholesaler_id == world.a_id
        assert settlement.scheduled_payout_at is None

    def test_one_settlement_per_order(self, gateway, world, new_order):
        order = new_order(gateway, world.a_id)
        settlement_service.create_settlement(gateway, order)
        with pytest.raises(Conflict):
            settlement_service.create_settlement(gateway, order)

    def test_schedule_payout_sets_date_once(self, gateway, world, new_order):
        order = new_order(gateway, world.a_id)
        settlement_service.create_settlement(gateway, order)

        first = settlement_service.schedule_payout(
            gateway, order.id, datetime(2025, 5, 1))
        assert first.scheduled_payout_at == datetime(2025, 5, 8)
        assert settlement_service.schedule_payout(
            gateway, order.id, datetime(2025, 6, 1)) is None


class TestUpdateSettlementStatus:

    @pytest.fixture
    def settlement(self, gateway, world, new_order):
        order = new_order(gateway, world.a_id, amount=20000)
        return settlement_service.create_settlement(gateway, order)

    def test_completed_then_pending_then_completed(
            self, gateway, world, caller_of, settlement):
        wholesaler = caller_of(world.a_profile)
        first = datetime(2025, 4, 1, 9, 0)
        second = datetime(2025, 4, 2, 9, 0)

        updated = settlement_service.update_settlement_status(
            gateway, wholesaler, settlement.id, 'completed', now=first)
        assert updated.status == SettlementStatus.COMPLETED
        assert updated.completed_at == first

        updated = settlement_service.update_settlement_status(
            gateway, wholesaler, settlement.id, 'pending')
        assert updated.status == SettlementStatus.PENDING
        assert updated.completed_at is None

        updated = settlement_service.update_settlement_status(
            gateway, wholesaler, settlement.id, 'completed', now=second)
        assert updated.completed_at == second
        assert updated.completed_at != first

    def test_unknown_status_rejected(
            self, gateway, world, caller_of, settlement):
        with pytest.raises(ValidationError):
            settlement_service.update_settlement_status(
                gateway, caller_of(world.a_profile), settlement.id, 'paid')

    def test_other_wholesaler_forbidden(
            self, gateway, world, caller_of, settlement):
        with pytest.raises(Forbidden):
            settlement_service.update_settlement_status(
                gateway, caller_of(world.b_profile), settlement.id,
                'completed')
        assert gateway.get(Settlement, settlement.id).status == \
            SettlementStatus.PENDING

    def test_admin_may_update_any(
            self, gateway, world, caller_of, settlement):
        updated = settlement_service.update_settlement_status(
            gateway, caller_of(world.admin_profile), settlement.id,
            'completed')
        assert updated.status == SettlementStatus.COMPLETED

    def test_missing_settlement(self, gateway, world, caller_of):
        with pytest.raises(NotFound):
            settlement_service.update_settlement_status(
                gateway, caller_of(world.admin_profile), 9999, 'completed')

    def test_writes_audit_entry(
            self, gateway, world, caller_of, settlement):
        settlement_service.update_settlement_status(
            gateway, caller_of(world.a_profile), settlement.id, 'completed')
        entry = gateway.first(
            AuditLog, {'action': 'settlement_status_update'})
        assert entry.target_id == settlement.id
        assert entry.get_details() == {
            'previous_status': 'pending',
            'new_status': 'completed',
        }

    def test_cache_failure_does_not_fail_update(
            self, gateway, world, caller_of, settlement):
        with patch(
                'wholesale.services.settlement_service.invalidate',
                return_value=Outcome(False, 'cache down')):
            updated = settlement_service.update_settlement_status(
                gateway, caller_of(world.a_profile), settlement.id,
                'completed')
        assert updated.status == SettlementStatus.COMPLETED


class TestPresentation:

    def _settlement(self, gateway, order, payout_at):
        settlement = settlement_service.create_settlement(gateway, order)
        return gateway.update(
            Settlement, settlement.id, scheduled_payout_at=payout_at)

    def test_overdue_pending_shown_completed(
            self, gateway, world, new_order):
        settlement = self._settlement(
            gateway, new_order(gateway, world.a_id), datetime(2025, 1, 10))

        presented = settlement_service.present_settlement(
            settlement, today=datetime(2025, 1, 20))
        assert presented['status'] == 'completed'
        assert presented['completed_at'] == '2025-01-10T00:00:00'
        # The stored row is untouched.
        assert gateway.get(Settlement, settlement.id).status == \
            SettlementStatus.PENDING

    def test_payout_today_still_pending(self, gateway, world, new_order):
        settlement = self._settlement(
            gateway, new_order(gateway, world.a_id),
            datetime(2025, 1, 20, 8, 0))
        presented = settlement_service.present_settlement(
            settlement, today=datetime(2025, 1, 20, 23, 0))
        assert presented['status'] == 'pending'
        assert presented['completed_at'] is None

    def test_list_filters_on_presented_status(
            self, gateway, world, caller_of, new_order):
        self._settlement(
            gateway, new_order(gateway, world.a_id), datetime(2025, 1, 1))
        self._settlement(
            gateway, new_order(gateway, world.a_id), datetime(2025, 2, 1))
        self._settlement(
            gateway, new_order(gateway, world.b_id), datetime(2025, 1, 1))

        result = settlement_service.list_settlements(
            gateway, caller_of(world.a_profile), status='completed',
            today=datetime(2025, 1, 15))
        assert result['total'] == 1
        assert result['items'][0]['scheduled_payout_at'] == \
            '2025-01-01T00:00:00'

    def test_list_rejects_unknown_sort(self, gateway, world, caller_of):
        with pytest.raises(ValidationError):
            settlement_service.list_settlements(
                gateway, caller_of(world.a_profile), sort_by='id; drop')

    def test_stats_scoped_to_wholesaler(
            self, gateway, world, caller_of, new_order):
        self._settlement(
            gateway, new_order(gateway, world.a_id, amount=10000),
            datetime(2025, 1, 1))
        self._settlement(
            gateway, new_order(gateway, world.a_id, amount=20000), None)
        self._settlement(
            gateway, new_order(gateway, world.b_id, amount=50000), None)

        stats = settlement_service.settlement_stats(
            gateway, caller_of(world.a_profile), today=datetime(2025, 1, 5))
        assert stats['total_count'] == 2
        assert stats['total_order_amount'] == 30000
        assert stats['total_platform_fee'] == 1500
        assert stats['completed_count'] == 1
        assert stats['completed_amount'] == 9500
        assert stats['pending_count'] == 1
        assert stats['pending_amount'] == 19000

    def test_get_settlement_checks_owner(
            self, gateway, world, caller_of, new_order):
        settlement = self._settlement(
            gateway, new_order(gateway, world.a_id), None)
        with pytest.raises(Forbidden):
            settlement_service.get_settlement(
                gateway, caller_of(world.b_profile), settlement.id)
        detail = settlement_service.get_settlement(
            gateway, caller_of(world.a_profile), settlement.id)
        assert detail['id'] == settlement.id
