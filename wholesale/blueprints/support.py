from flask import Blueprint, request, jsonify
from wholesale.middleware import current_caller
from wholesale.services.gateway import get_gateway
from wholesale.services.cache_service import cached_view
from wholesale.services import support_service
from wholesale.utils import get_json_body, get_pagination_args, \
    paginated_response
import logging

logger = logging.getLogger(__name__)

bp = Blueprint('support', __name__)


@bp.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok'})


@bp.route('/faqs', methods=['GET'])
@cached_view(support_service.FAQ_PATH)
def faqs():
    items = support_service.list_faqs(
        get_gateway(), current_caller(), search=request.args.get('search'))
    return jsonify({
        'items': [support_service.serialize_faq(f) for f in items],
        'total': len(items),
    })


@bp.route('/announcements', methods=['GET'])
@cached_view(support_service.ANNOUNCEMENT_PATH)
def announcements():
    page, per_page = get_pagination_args()
    result = support_service.list_announcements(
        get_gateway(), current_caller(), page, per_page)
    return jsonify(paginated_response(
        result, support_service.serialize_announcement))


@bp.route('/announcements/<int:announcement_id>', methods=['GET'])
def announcement_detail(announcement_id):
    announcement = support_service.get_announcement(
        get_gateway(), current_caller(), announcement_id)
    return jsonify(support_service.serialize_announcement(announcement))


@bp.route('/voc', methods=['POST'])
def submit_voc():
    data = get_json_body()
    feedback = support_service.submit_voc(
        get_gateway(),
        current_caller(),
        data.get('title'),
        data.get('content'),
    )
    return jsonify(support_service.serialize_voc(feedback)), 201
