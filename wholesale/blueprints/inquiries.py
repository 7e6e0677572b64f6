from flask import Blueprint, request, jsonify
from wholesale.middleware import role_required, current_caller
from wholesale.services.gateway import get_gateway
from wholesale.services import inquiry_service
from wholesale.services.authz import ANY_ROLE
from wholesale.utils import get_json_body, get_pagination_args, \
    paginated_response
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('inquiries', __name__)


@bp.route('', methods=['GET'])
@role_required(*ANY_ROLE)
def list_inquiries():
    page, per_page = get_pagination_args()
    result = inquiry_service.list_inquiries(
        get_gateway(),
        current_caller(),
        inquiry_type=request.args.get('type'),
        status=request.args.get('status'),
        search=request.args.get('search'),
        page=page,
        per_page=per_page,
        sort_by=request.args.get('sort_by', 'created_at'),
        sort_order=request.args.get('sort_order', 'desc'),
    )
    codes = result['author_codes']
    return jsonify(paginated_response(
        result,
        lambda i: inquiry_service.serialize_inquiry(i, codes.get(i.id)),
    ))


@bp.route('', methods=['POST'])
@role_required('wholesaler', 'retailer')
def create_inquiry():
    data = get_json_body()
    inquiry = inquiry_service.create_inquiry(
        get_gateway(),
        current_caller(),
        data.get('title'),
        data.get('content'),
        attachment_urls=data.get('attachment_urls'),
        inquiry_type=data.get('inquiry_type'),
        wholesaler_id=data.get('wholesaler_id'),
        order_id=data.get('order_id'),
        product_id=data.get('product_id'),
    )
    return jsonify(inquiry_service.serialize_inquiry(inquiry)), 201


@bp.route('/stats', methods=['GET'])
@role_required(*ANY_ROLE)
def inquiry_stats():
    return jsonify(inquiry_service.inquiry_stats(
        get_gateway(), current_caller(), request.args.get('type')))


@bp.route('/<int:inquiry_id>', methods=['GET'])
@role_required(*ANY_ROLE)
def inquiry_detail(inquiry_id):
    return jsonify(inquiry_service.get_inquiry(
        get_gateway(), current_caller(), inquiry_id))


@bp.route('/<int:inquiry_id>', methods=['PATCH'])
@role_required('wholesaler')
def update_inquiry(inquiry_id):
    data = get_json_body()
    inquiry = inquiry_service.update_inquiry_content(
        get_gateway(),
        current_caller(),
        inquiry_id,
        data.get('title'),
        data.get('content'),
    )
    return jsonify(inquiry_service.serialize_inquiry(inquiry))


@bp.route('/<int:inquiry_id>', methods=['DELETE'])
@role_required('wholesaler')
def delete_inquiry(inquiry_id):
    inquiry_service.delete_inquiry(get_gateway(), current_caller(), inquiry_id)
    return jsonify({'message': 'Inquiry deleted'})


@bp.route('/<int:inquiry_id>/reply', methods=['POST'])
@role_required('admin', 'wholesaler')
def reply(inquiry_id):
    data = get_json_body()
    inquiry = inquiry_service.reply_to_inquiry(
        get_gateway(), current_caller(), inquiry_id, data.get('reply'))
    return jsonify(inquiry_service.serialize_inquiry(inquiry))


@bp.route('/<int:inquiry_id>/follow-up', methods=['POST'])
@role_required(*ANY_ROLE)
def follow_up(inquiry_id):
    data = get_json_body()
    caller = current_caller()
    gateway = get_gateway()
    sender_type = data.get('sender_type', 'user')
    message = inquiry_service.add_follow_up_message(
        gateway, caller, inquiry_id, data.get('content'), sender_type)
    # An author's follow-up puts an answered inquiry back in the queue.
    if sender_type == 'user':
        inquiry_service.reopen_inquiry(gateway, caller, inquiry_id)
    return jsonify(inquiry_service.serialize_message(message)), 201


@bp.route('/<int:inquiry_id>/close', methods=['POST'])
@role_required(*ANY_ROLE)
def close(inquiry_id):
    inquiry = inquiry_service.close_inquiry(
        get_gateway(), current_caller(), inquiry_id)
    return jsonify(inquiry_service.serialize_inquiry(inquiry))


@bp.route('/messages/<int:message_id>', methods=['PATCH'])
@role_required(*ANY_ROLE)
def update_message(message_id):
    data = get_json_body()
    message = inquiry_service.update_inquiry_message(
        get_gateway(), current_caller(), message_id, data.get('content'))
    return jsonify(inquiry_service.serialize_message(message))


@bp.route('/messages/<int:message_id>', methods=['DELETE'])
@role_required(*ANY_ROLE)
def delete_message(message_id):
    inquiry_service.delete_inquiry_message(
        get_gateway(), current_caller(), message_id)
    return jsonify({'message': 'Message deleted'})
