from flask import Blueprint, request, jsonify, current_app
from wholesale.middleware import role_required, current_caller
from wholesale.services.gateway import get_gateway
from wholesale.services.cache_service import cached_view
from wholesale.services.identity import get_identity_provider
from wholesale.services import (
    account_service,
    notification_service,
    order_service,
    settlement_service,
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

bp = Blueprint('wholesaler', __name__)


@bp.route('/status', methods=['GET'])
def account_status():
    # Readable in every account state, so no role_required here.
    wholesaler = account_service.get_wholesaler_status(
        get_gateway(), current_caller())
    return jsonify(account_service.serialize_wholesaler(wholesaler))


# Orders

@bp.route('/orders', methods=['GET'])
@role_required('wholesaler', 'admin')
@cached_view(order_service.ORDER_LIST_PATH)
def orders():
    page, per_page = get_pagination_args()
    statuses = request.args.getlist('statuses') or None
    result = order_service.list_orders(
        get_gateway(),
        current_caller(),
        status=request.args.get('status'),
        statuses=statuses,
        start_date=parse_date(request.args.get('start_date'), 'start_date'),
        end_date=parse_date(
            request.args.get('end_date'), 'end_date', end_of_day=True),
        order_number=request.args.get('order_number'),
        customer_name=request.args.get('customer_name'),
        page=page,
        per_page=per_page,
    )
    return jsonify(paginated_response(
        result,
        order_service.serialize_order,
        status_counts=result['status_counts'],
    ))


@bp.route('/orders/stats', methods=['GET'])
@role_required('wholesaler', 'admin')
def order_stats():
    return jsonify(order_service.order_stats(
        get_gateway(),
        current_caller(),
        start_date=parse_date(request.args.get('start_date'), 'start_date'),
        end_date=parse_date(
            request.args.get('end_date'), 'end_date', end_of_day=True),
    ))


@bp.route('/orders/<int:order_id>', methods=['GET'])
@role_required('wholesaler', 'admin')
def order_detail(order_id):
    order = order_service.get_order(get_gateway(), current_caller(), order_id)
    return jsonify(order_service.serialize_order(order))


@bp.route('/orders/<int:order_id>/status', methods=['PATCH'])
@role_required('wholesaler', 'admin')
def update_order_status(order_id):
    data = get_json_body()
    if not data.get('status'):
        raise ValidationError('status is required')
    order = order_service.update_order_status(
        get_gateway(), current_caller(), order_id, data['status'])
    return jsonify({
        'message': 'Order status updated',
        'order': order_service.serialize_order(order),
    })


# Settlements

@bp.route('/settlements', methods=['GET'])
@role_required('wholesaler', 'admin')
@cached_view(settlement_service.SETTLEMENT_LIST_PATH)
def settlements():
    page, per_page = get_pagination_args()
    order_id = request.args.get('order_id')
    result = settlement_service.list_settlements(
        get_gateway(),
        current_caller(),
        status=request.args.get('status'),
        start_date=parse_date(request.args.get('start_date'), 'start_date'),
        end_date=parse_date(
            request.args.get('end_date'), 'end_date', end_of_day=True),
        order_id=int(order_id) if order_id and order_id.isdigit() else None,
        page=page,
        per_page=per_page,
        sort_by=request.args.get('sort_by', 'scheduled_payout_at'),
        sort_order=request.args.get('sort_order', 'asc'),
    )
    return jsonify(paginated_response(result, lambda item: item))


@bp.route('/settlements/stats', methods=['GET'])
@role_required('wholesaler', 'admin')
@cached_view(settlement_service.SETTLEMENT_STATS_PATH)
def settlement_stats():
    return jsonify(
        settlement_service.settlement_stats(get_gateway(), current_caller()))


@bp.route('/settlements/<int:settlement_id>', methods=['GET'])
@role_required('wholesaler', 'admin')
def settlement_detail(settlement_id):
    return jsonify(settlement_service.get_settlement(
        get_gateway(), current_caller(), settlement_id))


@bp.route('/settlements/<int:settlement_id>/status', methods=['PATCH'])
@role_required('wholesaler', 'admin')
def update_settlement_status(settlement_id):
    data = get_json_body()
    settlement = settlement_service.update_settlement_status(
        get_gateway(), current_caller(), settlement_id, data.get('status'))
    return jsonify({
        'message': 'Settlement status updated',
        'settlement': settlement_service.serialize_settlement(settlement),
    })


# Notifications

@bp.route('/notifications', methods=['GET'])
@role_required('wholesaler')
def notifications():
    return jsonify(notification_service.wholesaler_notifications(
        get_gateway(),
        current_caller().scope_id,
        limit=current_app.config['NOTIFICATION_LIMIT'],
    ))


@bp.route('/notifications/read', methods=['POST'])
@role_required('wholesaler')
def mark_notifications_read():
    updated = notification_service.mark_all_orders_read(
        get_gateway(), current_caller().scope_id)
    return jsonify({'updated': updated})


@bp.route('/account', methods=['DELETE'])
def delete_account():
    # Pending or rejected wholesalers may also leave.
    data = get_json_body()
    account_service.delete_account(
        get_gateway(),
        get_identity_provider(),
        current_caller(),
        data.get('reason'),
        data.get('feedback'),
    )
    return jsonify({'message': 'Account deleted'})
