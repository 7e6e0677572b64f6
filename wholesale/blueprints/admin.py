from flask import Blueprint, request, jsonify
from wholesale.middleware import role_required, current_caller
from wholesale.services.gateway import get_gateway
from wholesale.services.cache_service import cached_view
from wholesale.services import (
    account_service,
    audit_service,
    cs_service,
    inquiry_service,
    notification_service,
    support_service,
)
from wholesale.utils import (
    get_json_body,
    get_pagination_args,
    paginated_response,
    parse_date,
)
from wholesale.errors import ValidationError
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('admin', __name__)


def _int_arg(name):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f'{name} must be an integer')


# Wholesaler approval

@bp.route('/wholesalers/pending', methods=['GET'])
@role_required('admin')
@cached_view(account_service.PENDING_LIST_PATH)
def pending_wholesalers():
    page, per_page = get_pagination_args()
    result = account_service.list_pending_wholesalers(
        get_gateway(), current_caller(), page, per_page)
    return jsonify(paginated_response(
        result, account_service.serialize_wholesaler))


@bp.route('/wholesalers', methods=['GET'])
@role_required('admin')
@cached_view(account_service.WHOLESALER_LIST_PATH)
def wholesalers():
    page, per_page = get_pagination_args()
    result = account_service.list_wholesalers(
        get_gateway(),
        current_caller(),
        status=request.args.get('status'),
        search=request.args.get('search'),
        page=page,
        per_page=per_page,
    )
    return jsonify(paginated_response(
        result, account_service.serialize_wholesaler))


@bp.route('/wholesalers/<int:wholesaler_id>/approve', methods=['POST'])
@role_required('admin')
def approve_wholesaler(wholesaler_id):
    wholesaler = account_service.approve_wholesaler(
        get_gateway(), current_caller(), wholesaler_id)
    return jsonify({
        'message': 'Wholesaler approved',
        'wholesaler': account_service.serialize_wholesaler(wholesaler),
    })


@bp.route('/wholesalers/<int:wholesaler_id>/reject', methods=['POST'])
@role_required('admin')
def reject_wholesaler(wholesaler_id):
    data = get_json_body()
    wholesaler = account_service.reject_wholesaler(
        get_gateway(), current_caller(), wholesaler_id, data.get('reason'))
    return jsonify({
        'message': 'Wholesaler rejected',
        'wholesaler': account_service.serialize_wholesaler(wholesaler),
    })


@bp.route('/wholesalers/<int:wholesaler_id>/suspend', methods=['POST'])
@role_required('admin')
def suspend_wholesaler(wholesaler_id):
    data = get_json_body()
    wholesaler = account_service.suspend_wholesaler(
        get_gateway(), current_caller(), wholesaler_id, data.get('reason'))
    return jsonify({
        'message': 'Wholesaler suspended',
        'wholesaler': account_service.serialize_wholesaler(wholesaler),
    })


@bp.route('/wholesalers/<int:wholesaler_id>/unsuspend', methods=['POST'])
@role_required('admin')
def unsuspend_wholesaler(wholesaler_id):
    wholesaler = account_service.unsuspend_wholesaler(
        get_gateway(), current_caller(), wholesaler_id)
    return jsonify({
        'message': 'Wholesaler reinstated',
        'wholesaler': account_service.serialize_wholesaler(wholesaler),
    })


@bp.route('/retailers/<int:retailer_id>/suspend', methods=['POST'])
@role_required('admin')
def suspend_retailer(retailer_id):
    data = get_json_body()
    retailer = account_service.suspend_retailer(
        get_gateway(), current_caller(), retailer_id, data.get('reason'))
    return jsonify({
        'message': 'Retailer suspended',
        'retailer': account_service.serialize_retailer(retailer),
    })


@bp.route('/retailers/<int:retailer_id>/unsuspend', methods=['POST'])
@role_required('admin')
def unsuspend_retailer(retailer_id):
    retailer = account_service.unsuspend_retailer(
        get_gateway(), current_caller(), retailer_id)
    return jsonify({
        'message': 'Retailer reinstated',
        'retailer': account_service.serialize_retailer(retailer),
    })


@bp.route('/notifications', methods=['GET'])
@role_required('admin')
def notifications():
    return jsonify(
        notification_service.admin_notification_stats(get_gateway()))


# Audit logs

@bp.route('/audit-logs', methods=['GET'])
@role_required('admin')
def audit_logs():
    page, per_page = get_pagination_args()
    result = audit_service.list_audit_logs(
        get_gateway(),
        current_caller(),
        action=request.args.get('action'),
        target_type=request.args.get('target_type'),
        user_id=_int_arg('user_id'),
        start_date=parse_date(request.args.get('start_date'), 'start_date'),
        end_date=parse_date(
            request.args.get('end_date'), 'end_date', end_of_day=True),
        page=page,
        per_page=per_page,
    )
    return jsonify(paginated_response(
        result, audit_service.serialize_audit_log))


@bp.route('/audit-logs/<int:log_id>', methods=['GET'])
@role_required('admin')
def audit_log_detail(log_id):
    entry = audit_service.get_audit_log(
        get_gateway(), current_caller(), log_id)
    return jsonify(audit_service.serialize_audit_log(entry))


# Customer service threads

@bp.route('/cs', methods=['GET'])
@role_required('admin')
@cached_view(cs_service.CS_LIST_PATH)
def cs_threads():
    page, per_page = get_pagination_args()
    result = cs_service.list_threads(
        get_gateway(),
        current_caller(),
        status=request.args.get('status'),
        search=request.args.get('search'),
        page=page,
        per_page=per_page,
    )
    return jsonify(paginated_response(result, cs_service.serialize_thread))


@bp.route('/cs/<int:thread_id>', methods=['GET'])
@role_required('admin')
def cs_thread_detail(thread_id):
    return jsonify(
        cs_service.get_thread(get_gateway(), current_caller(), thread_id))


@bp.route('/cs/<int:thread_id>/reply', methods=['POST'])
@role_required('admin')
def cs_reply(thread_id):
    data = get_json_body()
    message = cs_service.reply_to_thread(
        get_gateway(), current_caller(), thread_id, data.get('content'))
    return jsonify({'message': 'Reply sent', 'message_id': message.id}), 201


@bp.route('/cs/<int:thread_id>/close', methods=['POST'])
@role_required('admin')
def cs_close(thread_id):
    thread = cs_service.close_thread(
        get_gateway(), current_caller(), thread_id)
    return jsonify({
        'message': 'Thread closed',
        'thread': cs_service.serialize_thread(thread),
    })


# Inquiries addressed to the platform

@bp.route('/inquiries', methods=['GET'])
@role_required('admin')
def admin_inquiries():
    page, per_page = get_pagination_args()
    gateway = get_gateway()
    result = inquiry_service.list_inquiries(
        gateway,
        current_caller(),
        inquiry_type=request.args.get('type', 'wholesaler_to_admin'),
        status=request.args.get('status'),
        search=request.args.get('search'),
        page=page,
        per_page=per_page,
        sort_order=request.args.get('sort_order', 'desc'),
    )
    codes = result['author_codes']
    return jsonify(paginated_response(
        result,
        lambda i: inquiry_service.serialize_inquiry(i, codes.get(i.id)),
    ))


@bp.route('/inquiries/reply', methods=['POST'])
@role_required('admin')
def admin_inquiry_reply():
    data = get_json_body()
    if not data.get('inquiry_id'):
        raise ValidationError('inquiry_id is required')
    inquiry = inquiry_service.reply_to_inquiry(
        get_gateway(),
        current_caller(),
        data['inquiry_id'],
        data.get('admin_reply') or data.get('reply'),
    )
    return jsonify({
        'message': 'Reply saved',
        'inquiry': inquiry_service.serialize_inquiry(inquiry),
    })


@bp.route('/inquiries/close', methods=['POST'])
@role_required('admin')
def admin_inquiry_close():
    data = get_json_body()
    if not data.get('inquiry_id'):
        raise ValidationError('inquiry_id is required')
    inquiry = inquiry_service.close_inquiry(
        get_gateway(), current_caller(), data['inquiry_id'])
    return jsonify({
        'message': 'Inquiry closed',
        'inquiry': inquiry_service.serialize_inquiry(inquiry),
    })


# FAQs

@bp.route('/faqs', methods=['POST'])
@role_required('admin')
def create_faq():
    data = get_json_body()
    faq = support_service.create_faq(
        get_gateway(),
        current_caller(),
        data.get('question'),
        data.get('answer'),
        data.get('display_order'),
    )
    return jsonify(support_service.serialize_faq(faq)), 201


@bp.route('/faqs/<int:faq_id>', methods=['PATCH'])
@role_required('admin')
def update_faq(faq_id):
    data = get_json_body()
    faq = support_service.update_faq(
        get_gateway(),
        current_caller(),
        faq_id,
        question=data.get('question'),
        answer=data.get('answer'),
        display_order=data.get('display_order'),
    )
    return jsonify(support_service.serialize_faq(faq))


@bp.route('/faqs/<int:faq_id>', methods=['DELETE'])
@role_required('admin')
def delete_faq(faq_id):
    support_service.delete_faq(get_gateway(), current_caller(), faq_id)
    return jsonify({'message': 'FAQ deleted'})


@bp.route('/faqs/<int:faq_id>/move', methods=['POST'])
@role_required('admin')
def move_faq(faq_id):
    data = get_json_body()
    faq = support_service.move_faq(
        get_gateway(), current_caller(), faq_id, data.get('direction'))
    return jsonify(support_service.serialize_faq(faq))


# Announcements

@bp.route('/announcements', methods=['POST'])
@role_required('admin')
def create_announcement():
    data = get_json_body()
    announcement = support_service.create_announcement(
        get_gateway(), current_caller(), data.get('title'),
        data.get('content'))
    return jsonify(
        support_service.serialize_announcement(announcement)), 201


@bp.route('/announcements/<int:announcement_id>', methods=['PATCH'])
@role_required('admin')
def update_announcement(announcement_id):
    data = get_json_body()
    announcement = support_service.update_announcement(
        get_gateway(),
        current_caller(),
        announcement_id,
        title=data.get('title'),
        content=data.get('content'),
    )
    return jsonify(support_service.serialize_announcement(announcement))


@bp.route('/announcements/<int:announcement_id>', methods=['DELETE'])
@role_required('admin')
def delete_announcement(announcement_id):
    support_service.delete_announcement(
        get_gateway(), current_caller(), announcement_id)
    return jsonify({'message': 'Announcement deleted'})


# Voice of customer

@bp.route('/voc', methods=['GET'])
@role_required('admin')
def voc_list():
    page, per_page = get_pagination_args()
    result = support_service.list_voc(
        get_gateway(),
        current_caller(),
        search=request.args.get('search'),
        start_date=parse_date(request.args.get('start_date'), 'start_date'),
        end_date=parse_date(
            request.args.get('end_date'), 'end_date', end_of_day=True),
        profile_id=_int_arg('profile_id'),
        page=page,
        per_page=per_page,
    )
    return jsonify(paginated_response(result, support_service.serialize_voc))
