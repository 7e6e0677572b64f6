"""FAQs, announcements and voice-of-customer feedback."""
from wholesale.models import FAQ, Announcement, VOCFeedback
from wholesale.services.authz import require_admin
from wholesale.services.cache_service import invalidate
from wholesale.services.gateway import Between, Gte, Lte, Search
from wholesale.errors import NotFound, ValidationError
from wholesale.utils import require_text
import logging

logger = logging.getLogger(__name__)

FAQ_PATH = '/faqs'
ANNOUNCEMENT_PATH = '/announcements'


def _get(gateway, model, row_id, label):
    row = gateway.get(model, row_id)
    if row is None:
        raise NotFound(f'{label} not found')
    return row


def serialize_faq(faq):
    return {
        'id': faq.id,
        'question': faq.question,
        'answer': faq.answer,
        'display_order': faq.display_order,
        'updated_at': faq.updated_at.isoformat(),
    }


def serialize_announcement(announcement):
    return {
        'id': announcement.id,
        'title': announcement.title,
        'content': announcement.content,
        'created_at': announcement.created_at.isoformat(),
        'updated_at': announcement.updated_at.isoformat(),
    }


def serialize_voc(feedback):
    return {
        'id': feedback.id,
        'profile_id': feedback.profile_id,
        'title': feedback.title,
        'content': feedback.content,
        'created_at': feedback.created_at.isoformat(),
    }


# FAQs

def list_faqs(gateway, caller, search=None):
    filters = {}
    if search:
        filters['_search'] = Search(search.strip(), 'question', 'answer')
    return gateway.select(FAQ, filters, order_by='display_order')


def create_faq(gateway, caller, question, answer, display_order=None):
    require_admin(caller)
    question = require_text(question, 'Question')
    answer = require_text(answer, 'Answer')
    if display_order is None:
        last = gateway.first(FAQ, order_by='display_order', descending=True)
        display_order = last.display_order + 1 if last else 1
    faq = gateway.insert(
        FAQ, question=question, answer=answer, display_order=display_order)
    invalidate(FAQ_PATH)
    return faq


def update_faq(gateway, caller, faq_id, question=None, answer=None,
               display_order=None):
    require_admin(caller)
    _get(gateway, FAQ, faq_id, 'FAQ')
    values = {}
    if question is not None:
        values['question'] = require_text(question, 'Question')
    if answer is not None:
        values['answer'] = require_text(answer, 'Answer')
    if display_order is not None:
        values['display_order'] = int(display_order)
    faq = gateway.update(FAQ, faq_id, **values)
    invalidate(FAQ_PATH)
    return faq


def delete_faq(gateway, caller, faq_id):
    require_admin(caller)
    _get(gateway, FAQ, faq_id, 'FAQ')
    gateway.delete(FAQ, faq_id)
    invalidate(FAQ_PATH)


def move_faq(gateway, caller, faq_id, direction):
    """Swap an FAQ's display order with its neighbour."""
    require_admin(caller)
    if direction not in ('up', 'down'):
        raise ValidationError('direction must be up or down')
    faq = _get(gateway, FAQ, faq_id, 'FAQ')
    current = faq.display_order

    if direction == 'up':
        neighbour = gateway.first(
            FAQ, {'display_order': Lte(current - 1)},
            order_by='display_order', descending=True)
    else:
        neighbour = gateway.first(
            FAQ, {'display_order': Gte(current + 1)},
            order_by='display_order')
    if neighbour is None:
        edge = 'top' if direction == 'up' else 'bottom'
        raise ValidationError(f'FAQ is already at the {edge}')

    neighbour_order = neighbour.display_order
    gateway.update(FAQ, neighbour.id, display_order=current)
    faq = gateway.update(FAQ, faq_id, display_order=neighbour_order)
    invalidate(FAQ_PATH)
    return faq


# Announcements

def list_announcements(gateway, caller, page=1, per_page=20):
    return gateway.paginate(Announcement, page=page, per_page=per_page)


def get_announcement(gateway, caller, announcement_id):
    return _get(gateway, Announcement, announcement_id, 'Announcement')


def create_announcement(gateway, caller, title, content):
    require_admin(caller)
    announcement = gateway.insert(
        Announcement,
        title=require_text(title, 'Title', 2, 200),
        content=require_text(content, 'Content'),
    )
    invalidate(ANNOUNCEMENT_PATH)
    return announcement


def update_announcement(gateway, caller, announcement_id, title=None,
                        content=None):
    require_admin(caller)
    _get(gateway, Announcement, announcement_id, 'Announcement')
    values = {}
    if title is not None:
        values['title'] = require_text(title, 'Title', 2, 200)
    if content is not None:
        values['content'] = require_text(content, 'Content')
    announcement = gateway.update(Announcement, announcement_id, **values)
    invalidate(ANNOUNCEMENT_PATH)
    return announcement


def delete_announcement(gateway, caller, announcement_id):
    require_admin(caller)
    _get(gateway, Announcement, announcement_id, 'Announcement')
    gateway.delete(Announcement, announcement_id)
    invalidate(ANNOUNCEMENT_PATH)


# Voice of customer

def submit_voc(gateway, caller, title, content):
    feedback = gateway.insert(
        VOCFeedback,
        profile_id=caller.profile_id,
        title=require_text(title, 'Title', 2, 200),
        content=require_text(content, 'Content', 10, 5000),
    )
    logger.info("VOC %s submitted by profile %s",
                feedback.id, caller.profile_id)
    return feedback


def list_voc(gateway, caller, search=None, start_date=None, end_date=None,
             profile_id=None, page=1, per_page=20):
    require_admin(caller)
    filters = {}
    if search:
        filters['_search'] = Search(search.strip(), 'title', 'content')
    if start_date or end_date:
        filters['created_at'] = Between(start_date, end_date)
    if profile_id:
        filters['profile_id'] = profile_id
    return gateway.paginate(VOCFeedback, filters, page=page,
                            per_page=per_page)
