from flask import request, current_app
from datetime import datetime, date, time
from wholesale.errors import ValidationError
import logging

logger = logging.getLogger(__name__)


def require_text(value, field, min_length=1, max_length=None):
    """Return ``value`` trimmed, or raise if its length is out of range."""
    if value is not None and not isinstance(value, str):
        raise ValidationError(f'{field} must be text')
    text = (value or '').strip()
    if len(text) < min_length:
        raise ValidationError(
            f'{field} must be at least {min_length} characters')
    if max_length is not None and len(text) > max_length:
        raise ValidationError(
            f'{field} must be at most {max_length} characters')
    return text


def get_pagination_args():
    try:
        page = int(request.args.get('page', 1))
        per_page = int(request.args.get(
            'per_page', current_app.config['ITEMS_PER_PAGE']))
    except (TypeError, ValueError):
        raise ValidationError('page and per_page must be integers')
    page = max(page, 1)
    per_page = min(max(per_page, 1), current_app.config['MAX_ITEMS_PER_PAGE'])
    return page, per_page


def parse_date(value, field, end_of_day=False):
    """Parse ``YYYY-MM-DD`` (or a full ISO timestamp) from a query arg."""
    if not value:
        return None
    try:
        if len(value) == 10:
            day = date.fromisoformat(value)
            return datetime.combine(day, time.max if end_of_day else time.min)
        return datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(f'{field} must be a date (YYYY-MM-DD)')


def get_json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def paginated_response(result, serializer, **extra):
    body = {
        'items': [serializer(item) for item in result['items']],
        'total': result['total'],
        'page': result['page'],
        'pages': result['pages'],
    }
    body.update(extra)
    return body
