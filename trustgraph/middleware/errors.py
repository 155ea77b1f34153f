"""
Error handling middleware.

Maps service exceptions, request validation errors and store failures to
consistent JSON responses.
"""
from flask import jsonify, g
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError

from trustgraph.infra.log import get_logger
from trustgraph.services.errors import TrustGraphError
from trustgraph.services.event_store import is_unique_violation

logger = get_logger('trustgraph.requests')


def _error_response(payload: dict, status_code: int):
    payload['request_id'] = getattr(g, 'request_id', None)
    return jsonify(payload), status_code


def register_error_handlers(app):
    """Register error handlers on the app."""

    @app.errorhandler(TrustGraphError)
    def handle_trust_error(e):
        logger.warning("Request rejected", error=e.code, detail=str(e))
        return _error_response(e.to_dict(), e.status_code)

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return _error_response({
            'error': 'validation_error',
            'message': 'Request validation failed',
            'details': e.messages,
        }, 400)

    @app.errorhandler(OperationalError)
    def handle_operational_error(e):
        """Store unreachable or not provisioned."""
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)
        logger.log_error_event(error_msg, error_type='store_unavailable')
        return _error_response({
            'error': 'store_unavailable',
            'message': 'Trust store is unavailable. Please try again later.',
        }, 503)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)
        logger.log_error_event(error_msg, error_type='integrity')
        if is_unique_violation(e):
            return _error_response({
                'error': 'duplicate_entry',
                'message': 'This entry already exists',
            }, 409)
        return _error_response({
            'error': 'integrity_error',
            'message': 'Data integrity constraint violated',
        }, 400)
