"""Inquiries between retailers, wholesalers and the platform admins.

Lifecycle: ``open`` -> ``answered`` (a reply is written) -> back to
``open`` when the author follows up -> ``closed`` (terminal).
"""
from datetime import datetime
from wholesale.models import (
    Inquiry,
    InquiryMessage,
    InquiryType,
    InquiryStatus,
    MessageSenderType,
    Retailer,
    Wholesaler,
    Order,
)
from wholesale.services.authz import (
    require_role,
    ADMIN,
    WHOLESALER,
    RETAILER,
    ANY_ROLE,
)
from wholesale.services.gateway import Search
from wholesale.services.side_effects import attempt
from wholesale.errors import NotFound, Forbidden, Conflict, ValidationError
from wholesale.utils import require_text
import json
import logging

logger = logging.getLogger(__name__)

TITLE_MIN, TITLE_MAX = 2, 200
CONTENT_MIN, CONTENT_MAX = 10, 5000
MAX_ATTACHMENTS = 5

ADMIN_TARGETED = (
    InquiryType.WHOLESALER_TO_ADMIN,
    InquiryType.RETAILER_TO_ADMIN,
)


def _content(value):
    return require_text(value, 'Content', CONTENT_MIN, CONTENT_MAX)


def _parse_type(value):
    try:
        return InquiryType(value)
    except ValueError:
        raise ValidationError(f'Unknown inquiry type: {value}')


def _parse_status(value):
    try:
        return InquiryStatus(value)
    except ValueError:
        raise ValidationError(f'Unknown inquiry status: {value}')


def _attachments(urls):
    if urls is None:
        return []
    if not isinstance(urls, (list, tuple)):
        raise ValidationError('Attachments must be a list of URLs')
    if len(urls) > MAX_ATTACHMENTS:
        raise ValidationError(
            f'At most {MAX_ATTACHMENTS} attachments are allowed')
    cleaned = []
    for url in urls:
        if not isinstance(url, str) or not url.strip():
            raise ValidationError('Attachment URLs must be non-empty text')
        cleaned.append(url.strip())
    return cleaned


def _get_inquiry(gateway, inquiry_id):
    inquiry = gateway.get(Inquiry, inquiry_id)
    if inquiry is None:
        raise NotFound('Inquiry not found')
    return inquiry


def is_author(caller, inquiry):
    return inquiry.user_id == caller.profile_id


def is_responder(caller, inquiry):
    """Whether the caller is the party an inquiry is addressed to."""
    if caller.is_admin:
        return True
    if inquiry.inquiry_type == InquiryType.RETAILER_TO_WHOLESALER:
        return (caller.role == WHOLESALER
                and caller.scope_id == inquiry.wholesaler_id)
    return False


def _check_visible(caller, inquiry):
    if is_author(caller, inquiry) or is_responder(caller, inquiry):
        return
    logger.warning("Profile %s denied access to inquiry %s",
                   caller.profile_id, inquiry.id)
    raise Forbidden('No permission to access this inquiry')


def _author_code(gateway, inquiry):
    if inquiry.inquiry_type == InquiryType.WHOLESALER_TO_ADMIN:
        return None
    retailer = gateway.first(
        Retailer, {'profile_id': inquiry.user_id}, order_by='id')
    return retailer.anonymous_code if retailer else None


def serialize_message(message):
    return {
        'id': message.id,
        'inquiry_id': message.inquiry_id,
        'sender_type': message.sender_type.value,
        'sender_id': message.sender_id,
        'content': message.content,
        'edited_at': (
            message.edited_at.isoformat() if message.edited_at else None
        ),
        'created_at': message.created_at.isoformat(),
    }


def serialize_inquiry(inquiry, author_code=None, messages=None):
    data = {
        'id': inquiry.id,
        'user_id': inquiry.user_id,
        'inquiry_type': inquiry.inquiry_type.value,
        'wholesaler_id': inquiry.wholesaler_id,
        'order_id': inquiry.order_id,
        'product_id': inquiry.product_id,
        'title': inquiry.title,
        'content': inquiry.content,
        'attachment_urls': inquiry.attachment_urls,
        'status': inquiry.status.value,
        'admin_reply': inquiry.admin_reply,
        'replied_at': (
            inquiry.replied_at.isoformat() if inquiry.replied_at else None
        ),
        'created_at': inquiry.created_at.isoformat(),
        'updated_at': inquiry.updated_at.isoformat(),
    }
    if author_code is not None:
        data['author_code'] = author_code
    if messages is not None:
        data['messages'] = [serialize_message(m) for m in messages]
    return data


def create_inquiry(
        gateway,
        caller,
        title,
        content,
        attachment_urls=None,
        inquiry_type=None,
        wholesaler_id=None,
        order_id=None,
        product_id=None):
    require_role(caller, WHOLESALER, RETAILER)
    title = require_text(title, 'Title', TITLE_MIN, TITLE_MAX)
    content = _content(content)
    attachments = _attachments(attachment_urls)

    if caller.role == WHOLESALER:
        # Wholesalers only write to the platform.
        kind = InquiryType.WHOLESALER_TO_ADMIN
        wholesaler_id = None
        order_id = None
    else:
        kind = _parse_type(inquiry_type or 'retailer_to_wholesaler')
        if kind == InquiryType.WHOLESALER_TO_ADMIN:
            raise Forbidden('Retailers cannot open wholesaler inquiries')
        if kind == InquiryType.RETAILER_TO_WHOLESALER:
            if not wholesaler_id:
                raise ValidationError('wholesaler_id is required')
            if gateway.get(Wholesaler, wholesaler_id) is None:
                raise NotFound('Wholesaler not found')
        else:
            wholesaler_id = None
        if order_id:
            order = gateway.get(Order, order_id)
            if order is None or order.retailer_id != caller.scope_id:
                raise NotFound('Order not found')

    inquiry = gateway.insert(
        Inquiry,
        user_id=caller.profile_id,
        inquiry_type=kind,
        wholesaler_id=wholesaler_id,
        order_id=order_id,
        product_id=product_id,
        title=title,
        content=content,
        attachment_urls_json=json.dumps(attachments) if attachments else None,
        status=InquiryStatus.OPEN,
    )
    logger.info("Inquiry %s (%s) created by profile %s",
                inquiry.id, kind.value, caller.profile_id)

    # The inquiry stands even if its opening message cannot be stored.
    opened = attempt(
        'initial inquiry message',
        gateway.insert,
        InquiryMessage,
        inquiry_id=inquiry.id,
        sender_type=MessageSenderType.USER,
        sender_id=caller.profile_id,
        content=content,
    )
    if not opened.ok:
        logger.warning("Inquiry %s has no initial message: %s",
                       inquiry.id, opened.error)
    return inquiry


def reply_to_inquiry(gateway, caller, inquiry_id, reply, now=None):
    require_role(caller, ADMIN, WHOLESALER)
    reply = _content(reply)
    inquiry = _get_inquiry(gateway, inquiry_id)
    if inquiry.inquiry_type in ADMIN_TARGETED and not caller.is_admin:
        raise Forbidden('Only admins can answer this inquiry')
    if not is_responder(caller, inquiry):
        raise Forbidden('No permission to answer this inquiry')
    if inquiry.status == InquiryStatus.CLOSED:
        raise Conflict('Inquiry is closed')

    now = now or datetime.utcnow()
    inquiry = gateway.update(
        Inquiry,
        inquiry_id,
        admin_reply=reply,
        replied_at=now,
        status=InquiryStatus.ANSWERED,
    )
    sender_type = (
        MessageSenderType.WHOLESALER
        if inquiry.inquiry_type == InquiryType.RETAILER_TO_WHOLESALER
        else MessageSenderType.ADMIN
    )
    logged = attempt(
        'reply message',
        gateway.insert,
        InquiryMessage,
        inquiry_id=inquiry_id,
        sender_type=sender_type,
        sender_id=caller.profile_id,
        content=reply,
    )
    if not logged.ok:
        logger.warning("Reply to inquiry %s not added to thread: %s",
                       inquiry_id, logged.error)
    logger.info("Inquiry %s answered by profile %s",
                inquiry_id, caller.profile_id)
    return inquiry


def add_follow_up_message(gateway, caller, inquiry_id, content,
                          sender_type='user'):
    """Append a message to an inquiry thread.

    Status is left alone; reopening after an author follow-up is up to
    the caller (see ``reopen_inquiry``).
    """
    require_role(caller, *ANY_ROLE)
    content = _content(content)
    try:
        sender = MessageSenderType(sender_type)
    except ValueError:
        raise ValidationError(f'Unknown sender type: {sender_type}')

    inquiry = _get_inquiry(gateway, inquiry_id)
    if sender == MessageSenderType.USER:
        if not is_author(caller, inquiry):
            raise Forbidden('Only the author can add follow-up questions')
    elif not is_responder(caller, inquiry):
        raise Forbidden('No permission to answer this inquiry')
    elif (sender == MessageSenderType.ADMIN) != caller.is_admin:
        raise Forbidden('Sender type does not match your role')
    if inquiry.status == InquiryStatus.CLOSED:
        raise Conflict('Inquiry is closed')

    return gateway.insert(
        InquiryMessage,
        inquiry_id=inquiry_id,
        sender_type=sender,
        sender_id=caller.profile_id,
        content=content,
    )


def reopen_inquiry(gateway, caller, inquiry_id):
    require_role(caller, *ANY_ROLE)
    inquiry = _get_inquiry(gateway, inquiry_id)
    if not is_author(caller, inquiry):
        raise Forbidden('Only the author can reopen an inquiry')
    if inquiry.status != InquiryStatus.ANSWERED:
        return inquiry
    logger.info("Inquiry %s reopened by its author", inquiry_id)
    return gateway.update(Inquiry, inquiry_id, status=InquiryStatus.OPEN)


def _get_own_message(gateway, caller, message_id):
    message = gateway.get(InquiryMessage, message_id)
    if message is None:
        raise NotFound('Message not found')
    if message.sender_id != caller.profile_id:
        raise Forbidden('You can only change your own messages')
    inquiry = _get_inquiry(gateway, message.inquiry_id)
    if inquiry.status == InquiryStatus.CLOSED:
        raise Conflict('Messages of a closed inquiry cannot be changed')
    return message


def update_inquiry_message(gateway, caller, message_id, content, now=None):
    require_role(caller, *ANY_ROLE)
    content = _content(content)
    _get_own_message(gateway, caller, message_id)
    return gateway.update(
        InquiryMessage,
        message_id,
        content=content,
        edited_at=now or datetime.utcnow(),
    )


def delete_inquiry_message(gateway, caller, message_id):
    require_role(caller, *ANY_ROLE)
    _get_own_message(gateway, caller, message_id)
    gateway.delete(InquiryMessage, message_id)
    logger.info("Inquiry message %s deleted by profile %s",
                message_id, caller.profile_id)


def update_inquiry_content(gateway, caller, inquiry_id, title, content):
    require_role(caller, WHOLESALER)
    title = require_text(title, 'Title', TITLE_MIN, TITLE_MAX)
    content = _content(content)
    inquiry = _get_inquiry(gateway, inquiry_id)
    if not is_author(caller, inquiry):
        raise Forbidden('You can only edit your own inquiries')
    if inquiry.inquiry_type != InquiryType.WHOLESALER_TO_ADMIN:
        raise Forbidden('This inquiry cannot be edited')
    if inquiry.status == InquiryStatus.CLOSED:
        raise Conflict('Inquiry is closed')
    return gateway.update(Inquiry, inquiry_id, title=title, content=content)


def delete_inquiry(gateway, caller, inquiry_id):
    require_role(caller, WHOLESALER)
    inquiry = _get_inquiry(gateway, inquiry_id)
    if not is_author(caller, inquiry):
        raise Forbidden('You can only delete your own inquiries')
    if inquiry.inquiry_type != InquiryType.WHOLESALER_TO_ADMIN:
        raise Forbidden('This inquiry cannot be deleted')
    gateway.delete(Inquiry, inquiry_id)
    logger.info("Inquiry %s deleted by its author", inquiry_id)


def close_inquiry(gateway, caller, inquiry_id):
    require_role(caller, *ANY_ROLE)
    inquiry = _get_inquiry(gateway, inquiry_id)
    if not (is_author(caller, inquiry) or is_responder(caller, inquiry)):
        raise Forbidden('No permission to close this inquiry')
    if inquiry.status == InquiryStatus.CLOSED:
        raise Conflict('Inquiry is already closed')
    logger.info("Inquiry %s closed by profile %s",
                inquiry_id, caller.profile_id)
    return gateway.update(Inquiry, inquiry_id, status=InquiryStatus.CLOSED)


def _visible_filters(caller, inquiry_type=None):
    kind = _parse_type(inquiry_type) if inquiry_type else None
    filters = {}
    if caller.is_admin:
        if kind is not None:
            filters['inquiry_type'] = kind
    elif caller.role == WHOLESALER:
        kind = kind or InquiryType.RETAILER_TO_WHOLESALER
        filters['inquiry_type'] = kind
        if kind == InquiryType.RETAILER_TO_WHOLESALER:
            filters['wholesaler_id'] = caller.scope_id
        elif kind == InquiryType.WHOLESALER_TO_ADMIN:
            filters['user_id'] = caller.profile_id
        else:
            raise Forbidden('No permission to list these inquiries')
    else:
        filters['user_id'] = caller.profile_id
        if kind is not None:
            filters['inquiry_type'] = kind
    return filters


def list_inquiries(
        gateway,
        caller,
        inquiry_type=None,
        status=None,
        search=None,
        page=1,
        per_page=20,
        sort_by='created_at',
        sort_order='desc'):
    require_role(caller, *ANY_ROLE)
    if sort_by not in ('created_at', 'updated_at', 'replied_at'):
        raise ValidationError(f'Cannot sort inquiries by {sort_by}')
    filters = _visible_filters(caller, inquiry_type)
    if status:
        filters['status'] = _parse_status(status)
    if search:
        filters['_search'] = Search(search.strip(), 'title', 'content')
    result = gateway.paginate(
        Inquiry,
        filters,
        order_by=sort_by,
        descending=(sort_order != 'asc'),
        page=page,
        per_page=per_page,
    )
    result['author_codes'] = {
        inquiry.id: _author_code(gateway, inquiry)
        for inquiry in result['items']
    }
    return result


def get_inquiry(gateway, caller, inquiry_id):
    require_role(caller, *ANY_ROLE)
    inquiry = _get_inquiry(gateway, inquiry_id)
    _check_visible(caller, inquiry)
    messages = gateway.select(
        InquiryMessage,
        {'inquiry_id': inquiry_id},
        order_by='created_at',
    )
    return serialize_inquiry(
        inquiry,
        author_code=_author_code(gateway, inquiry),
        messages=messages,
    )


def inquiry_stats(gateway, caller, inquiry_type=None):
    require_role(caller, *ANY_ROLE)
    filters = _visible_filters(caller, inquiry_type)
    stats = {'total': gateway.count(Inquiry, filters)}
    for option in InquiryStatus:
        stats[option.value] = gateway.count(
            Inquiry, dict(filters, status=option))
    return stats
