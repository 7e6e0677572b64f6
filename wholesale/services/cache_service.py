"""Short-lived cache for list views, dropped by path on writes."""
from flask import current_app, request, jsonify, g
from functools import wraps
from wholesale.services.side_effects import attempt
import threading
import time
import logging

logger = logging.getLogger(__name__)

_lock = threading.Lock()
# {view_path: {key: (expires_at, payload)}}
_entries = {}


def _get(path, key):
    with _lock:
        bucket = _entries.get(path)
        if not bucket or key not in bucket:
            return None
        expires_at, payload = bucket[key]
        if time.monotonic() >= expires_at:
            del bucket[key]
            return None
        return payload


def _set(path, key, payload, ttl):
    with _lock:
        _entries.setdefault(path, {})[key] = (time.monotonic() + ttl, payload)


def _drop(paths):
    with _lock:
        for path in paths:
            removed = _entries.pop(path, None)
            if removed:
                logger.debug("Cache dropped %d entries for %s",
                             len(removed), path)


def invalidate(*paths):
    """Drop every cached response for the given view paths."""
    return attempt('cache:' + ','.join(paths), _drop, paths)


def clear():
    with _lock:
        _entries.clear()


def cached_view(path):
    """Cache a JSON list view per caller and query string."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            caller = getattr(g, 'caller', None)
            key = (
                getattr(caller, 'profile_id', None),
                request.full_path,
            )
            payload = _get(path, key)
            if payload is not None:
                return jsonify(payload)

            response = f(*args, **kwargs)
            if getattr(response, 'status_code', None) == 200:
                _set(path, key, response.get_json(),
                     current_app.config['VIEW_CACHE_TTL'])
            return response
        return decorated_function
    return decorator
