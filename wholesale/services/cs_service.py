from datetime import datetime
from wholesale.models import (
    CSThread,
    CSMessage,
    CSThreadStatus,
    CSSenderType,
)
from wholesale.services.authz import require_admin
from wholesale.services.audit_service import record_audit
from wholesale.services.cache_service import invalidate
from wholesale.services.gateway import Search
from wholesale.errors import NotFound, Conflict, ValidationError
from wholesale.utils import require_text
import logging

logger = logging.getLogger(__name__)

CS_LIST_PATH = '/admin/cs'
REPLY_MIN_LENGTH = 5
REPLYABLE = (
    CSThreadStatus.OPEN,
    CSThreadStatus.BOT_HANDLED,
    CSThreadStatus.ESCALATED,
)


def _get_thread(gateway, thread_id):
    thread = gateway.get(CSThread, thread_id)
    if thread is None:
        raise NotFound('CS thread not found')
    return thread


def serialize_thread(thread, messages=None):
    data = {
        'id': thread.id,
        'user_id': thread.user_id,
        'title': thread.title,
        'status': thread.status.value,
        'closed_at': (
            thread.closed_at.isoformat() if thread.closed_at else None
        ),
        'created_at': thread.created_at.isoformat(),
        'updated_at': thread.updated_at.isoformat(),
    }
    if messages is not None:
        data['messages'] = [
            {
                'id': m.id,
                'sender_type': m.sender_type.value,
                'sender_id': m.sender_id,
                'content': m.content,
                'created_at': m.created_at.isoformat(),
            }
            for m in messages
        ]
    return data


def reply_to_thread(gateway, caller, thread_id, content):
    require_admin(caller)
    content = require_text(content, 'Reply', min_length=REPLY_MIN_LENGTH)
    thread = _get_thread(gateway, thread_id)
    if thread.status not in REPLYABLE:
        raise Conflict(
            f'Cannot reply to a thread that is {thread.status.value}')

    message = gateway.insert(
        CSMessage,
        cs_thread_id=thread_id,
        sender_type=CSSenderType.ADMIN,
        sender_id=caller.profile_id,
        content=content,
    )
    gateway.update(CSThread, thread_id, status=CSThreadStatus.ANSWERED)
    logger.info("CS thread %s answered by profile %s",
                thread_id, caller.profile_id)

    audit = record_audit(
        gateway,
        caller.profile_id,
        'cs_reply',
        'cs_thread',
        thread_id,
        {'message_id': message.id, 'content_length': len(content)},
    )
    if not audit.ok:
        logger.warning("CS reply audit not written: %s", audit.error)
    invalidate(CS_LIST_PATH, f'{CS_LIST_PATH}/{thread_id}')
    return message


def close_thread(gateway, caller, thread_id, now=None):
    require_admin(caller)
    thread = _get_thread(gateway, thread_id)
    if thread.status == CSThreadStatus.CLOSED:
        raise Conflict('CS thread is already closed')

    previous_status = thread.status.value
    now = now or datetime.utcnow()
    thread = gateway.update(
        CSThread,
        thread_id,
        status=CSThreadStatus.CLOSED,
        closed_at=now,
    )
    logger.info("CS thread %s closed by profile %s",
                thread_id, caller.profile_id)

    audit = record_audit(
        gateway,
        caller.profile_id,
        'cs_close',
        'cs_thread',
        thread_id,
        {'previous_status': previous_status},
    )
    if not audit.ok:
        logger.warning("CS close audit not written: %s", audit.error)
    invalidate(CS_LIST_PATH, f'{CS_LIST_PATH}/{thread_id}')
    return thread


def list_threads(gateway, caller, status=None, search=None, page=1,
                 per_page=20):
    require_admin(caller)
    filters = {}
    if status:
        try:
            filters['status'] = CSThreadStatus(status)
        except ValueError:
            raise ValidationError(f'Unknown CS thread status: {status}')
    if search:
        filters['_search'] = Search(search.strip(), 'title')
    return gateway.paginate(CSThread, filters, order_by='updated_at',
                            page=page, per_page=per_page)


def get_thread(gateway, caller, thread_id):
    require_admin(caller)
    thread = _get_thread(gateway, thread_id)
    messages = gateway.select(
        CSMessage, {'cs_thread_id': thread_id}, order_by='created_at')
    return serialize_thread(thread, messages)
