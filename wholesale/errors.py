from flask import jsonify
from werkzeug.exceptions import HTTPException
import logging

logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    status_code = 500
    default_message = 'An unexpected error occurred'

    def __init__(self, message=None, details=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self):
        body = {'error': self.message}
        if self.details:
            body['details'] = self.details
        return body


class Unauthenticated(WorkflowError):
    status_code = 401
    default_message = 'Not logged in'


class Forbidden(WorkflowError):
    status_code = 403
    default_message = 'Insufficient permissions'


class ValidationError(WorkflowError):
    status_code = 400
    default_message = 'Invalid input'


class NotFound(WorkflowError):
    status_code = 404
    default_message = 'Resource not found'


class Conflict(WorkflowError):
    """The resource is in a state that does not allow the operation."""
    status_code = 409
    default_message = 'Operation not allowed in the current state'


class UpstreamError(WorkflowError):
    """Failure reported by the database or the identity provider.

    Mirrors the store's structured error: message, code, details, hint.
    Only the message is shown to clients; the rest goes to the log.
    """
    status_code = 502
    default_message = 'Upstream service error'

    def __init__(self, message=None, code=None, details=None, hint=None):
        super().__init__(message, details=None)
        self.code = code
        self.upstream_details = details
        self.hint = hint

    def __repr__(self):
        return (
            f"<UpstreamError message={self.message!r} code={self.code!r} "
            f"details={self.upstream_details!r} hint={self.hint!r}>"
        )


def register_error_handlers(app):

    @app.errorhandler(WorkflowError)
    def handle_workflow_error(exc):
        if isinstance(exc, UpstreamError):
            logger.error("Upstream failure: %r", exc)
        elif exc.status_code >= 500:
            logger.error("Workflow failure: %s", exc.message)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        return jsonify({'error': exc.description or exc.name}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        logger.error("Unhandled error: %s", exc, exc_info=True)
        return jsonify({'error': 'An unexpected error occurred'}), 500
