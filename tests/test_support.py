from datetime import datetime
from unittest.mock import patch
import pytest

from wholesale.errors import (
    Conflict,
    Forbidden,
    NotFound,
    UpstreamError,
    ValidationError,
)
from wholesale.models import (
    AuditLog,
    CSMessage,
    CSThread,
    CSThreadStatus,
    FAQ,
)
from wholesale.services import (
    audit_service,
    cs_service,
    support_service,
)


@pytest.fixture
def thread(gateway, world):
    return gateway.insert(
        CSThread,
        user_id=world.retailer_profile,
        title='Order never arrived',
        status=CSThreadStatus.ESCALATED,
    )


class TestCSThreads:

    def test_reply_marks_answered(self, gateway, world, caller_of, thread):
        message = cs_service.reply_to_thread(
            gateway, caller_of(world.admin_profile), thread.id,
            'We are checking with the courier.')

        assert gateway.get(CSThread, thread.id).status == \
            CSThreadStatus.ANSWERED
        assert gateway.get(CSMessage, message.id).sender_id == \
            world.admin_profile
        entry = gateway.first(AuditLog, {'action': 'cs_reply'})
        assert entry.target_type == 'cs_thread'
        assert entry.target_id == thread.id

    def test_reply_too_short(self, gateway, world, caller_of, thread):
        with pytest.raises(ValidationError):
            cs_service.reply_to_thread(
                gateway, caller_of(world.admin_profile), thread.id, 'ok')

    @pytest.mark.parametrize('status', [
        CSThreadStatus.ANSWERED,
        CSThreadStatus.CLOSED,
    ])
    def test_reply_blocked_after_answer_or_close(
            self, gateway, world, caller_of, thread, status):
        gateway.update(CSThread, thread.id, status=status)
        with pytest.raises(Conflict):
            cs_service.reply_to_thread(
                gateway, caller_of(world.admin_profile), thread.id,
                'Any update on this?')

    def test_close_is_not_repeated(self, gateway, world, caller_of, thread):
        admin = caller_of(world.admin_profile)
        first = datetime(2025, 6, 1, 9, 0)
        closed = cs_service.close_thread(
            gateway, admin, thread.id, now=first)
        assert closed.status == CSThreadStatus.CLOSED
        assert closed.closed_at == first

        with pytest.raises(Conflict):
            cs_service.close_thread(
                gateway, admin, thread.id, now=datetime(2025, 6, 2))
        assert gateway.get(CSThread, thread.id).closed_at == first

    def test_admin_only(self, gateway, world, caller_of, thread):
        with pytest.raises(Forbidden):
            cs_service.close_thread(
                gateway, caller_of(world.a_profile), thread.id)

    def test_detail_and_list(self, gateway, world, caller_of, thread):
        admin = caller_of(world.admin_profile)
        cs_service.reply_to_thread(
            gateway, admin, thread.id, 'We are checking with the courier.')

        detail = cs_service.get_thread(gateway, admin, thread.id)
        assert detail['status'] == 'answered'
        assert [m['sender_type'] for m in detail['messages']] == ['admin']

        result = cs_service.list_threads(gateway, admin, search='arrived')
        assert result['total'] == 1
        with pytest.raises(ValidationError):
            cs_service.list_threads(gateway, admin, status='snoozed')

    def test_missing_thread(self, gateway, world, caller_of):
        with pytest.raises(NotFound):
            cs_service.get_thread(gateway, caller_of(world.admin_profile), 1)


class TestFAQ:

    def _faqs(self, gateway, admin, count=3):
        return [
            support_service.create_faq(
                gateway, admin, f'Question {i}?', f'Answer {i}.')
            for i in range(1, count + 1)
        ]

    def test_display_order_appends(self, gateway, world, caller_of):
        faqs = self._faqs(gateway, caller_of(world.admin_profile))
        assert [f.display_order for f in faqs] == [1, 2, 3]

    def test_move_swaps_with_neighbour(self, gateway, world, caller_of):
        admin = caller_of(world.admin_profile)
        first, second, third = self._faqs(gateway, admin)

        support_service.move_faq(gateway, admin, third.id, 'up')
        ordered = support_service.list_faqs(gateway, admin)
        assert [f.id for f in ordered] == [first.id, third.id, second.id]

    def test_move_past_edge(self, gateway, world, caller_of):
        admin = caller_of(world.admin_profile)
        first, _, third = self._faqs(gateway, admin)
        with pytest.raises(ValidationError):
            support_service.move_faq(gateway, admin, first.id, 'up')
        with pytest.raises(ValidationError):
            support_service.move_faq(gateway, admin, third.id, 'down')
        with pytest.raises(ValidationError):
            support_service.move_faq(gateway, admin, first.id, 'sideways')

    def test_update_and_delete(self, gateway, world, caller_of):
        admin = caller_of(world.admin_profile)
        [faq] = self._faqs(gateway, admin, count=1)
        updated = support_service.update_faq(
            gateway, admin, faq.id, answer='A better answer.')
        assert updated.answer == 'A better answer.'
        assert updated.question == 'Question 1?'

        support_service.delete_faq(gateway, admin, faq.id)
        assert gateway.get(FAQ, faq.id) is None
        with pytest.raises(NotFound):
            support_service.delete_faq(gateway, admin, faq.id)

    def test_search(self, gateway, world, caller_of):
        admin = caller_of(world.admin_profile)
        self._faqs(gateway, admin)
        found = support_service.list_faqs(gateway, admin, search='answer 2')
        assert [f.question for f in found] == ['Question 2?']

    def test_non_admin_cannot_create(self, gateway, world, caller_of):
        with pytest.raises(Forbidden):
            support_service.create_faq(
                gateway, caller_of(world.a_profile), 'Q?', 'A.')


class TestAnnouncements:

    def test_crud(self, gateway, world, caller_of):
        admin = caller_of(world.admin_profile)
        announcement = support_service.create_announcement(
            gateway, admin, 'Holiday schedule', 'Closed on New Year.')
        support_service.update_announcement(
            gateway, admin, announcement.id, title='Holiday hours')

        reader = caller_of(world.retailer_profile)
        fetched = support_service.get_announcement(
            gateway, reader, announcement.id)
        assert fetched.title == 'Holiday hours'
        assert support_service.list_announcements(
            gateway, reader)['total'] == 1

        support_service.delete_announcement(gateway, admin, announcement.id)
        with pytest.raises(NotFound):
            support_service.get_announcement(
                gateway, reader, announcement.id)


class TestVOC:

    def test_submit_and_list(self, gateway, world, caller_of):
        feedback = support_service.submit_voc(
            gateway, caller_of(world.a_profile), 'Settlement page',
            'Please show the payout date in the list.')
        assert feedback.profile_id == world.a_profile

        result = support_service.list_voc(
            gateway, caller_of(world.admin_profile), search='payout')
        assert [f.id for f in result['items']] == [feedback.id]

    @pytest.mark.parametrize('title,content', [
        ('x', 'Long enough content here'),
        ('Fine title', 'too short'),
    ])
    def test_validation(self, gateway, world, caller_of, title, content):
        with pytest.raises(ValidationError):
            support_service.submit_voc(
                gateway, caller_of(world.a_profile), title, content)

    def test_list_is_admin_only(self, gateway, world, caller_of):
        with pytest.raises(Forbidden):
            support_service.list_voc(gateway, caller_of(world.a_profile))


class TestAuditLog:

    def test_record_and_filter(self, gateway, world, caller_of):
        outcome = audit_service.record_audit(
            gateway, world.admin_profile, 'wholesaler_approve',
            'wholesaler', world.a_id, {'note': 'manual'},
            ip_address='10.0.0.1')
        assert outcome.ok
        audit_service.record_audit(
            gateway, world.admin_profile, 'cs_close', 'cs_thread', 3)

        admin = caller_of(world.admin_profile)
        result = audit_service.list_audit_logs(
            gateway, admin, action='wholesaler_approve')
        assert result['total'] == 1
        serialized = audit_service.serialize_audit_log(result['items'][0])
        assert serialized['details'] == {'note': 'manual'}
        assert serialized['ip_address'] == '10.0.0.1'

        entry = audit_service.get_audit_log(
            gateway, admin, result['items'][0].id)
        assert entry.action == 'wholesaler_approve'

    def test_failure_is_reported_not_raised(self, gateway, world):
        with patch.object(gateway, 'insert',
                          side_effect=UpstreamError('Conflicting record')):
            outcome = audit_service.record_audit(
                gateway, world.admin_profile, 'wholesaler_approve',
                'wholesaler', world.a_id)
        assert not outcome.ok
        assert outcome.error == 'Conflicting record'
        assert gateway.count(AuditLog) == 0

    def test_listing_is_admin_only(self, gateway, world, caller_of):
        with pytest.raises(Forbidden):
            audit_service.list_audit_logs(
                gateway, caller_of(world.a_profile))
