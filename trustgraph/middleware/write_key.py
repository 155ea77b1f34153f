# -*- coding: utf-8 -*-
"""
Write key guard for ingest and recompute routes.

Off unless TRUSTGRAPH_ENFORCE_WRITE_KEY is set. When enforced, the key comes
from the X-TrustGraph-Write-Key header or the writeKey query parameter; a
missing TRUSTGRAPH_WRITE_KEY rejects every write.
"""
import hmac
from functools import wraps

from flask import current_app, jsonify, request, g

WRITE_KEY_HEADER = 'X-TrustGraph-Write-Key'
WRITE_KEY_PARAM = 'writeKey'


def is_write_allowed() -> bool:
    if not current_app.config.get('TRUSTGRAPH_ENFORCE_WRITE_KEY'):
        return True
    expected = current_app.config.get('TRUSTGRAPH_WRITE_KEY')
    provided = request.headers.get(WRITE_KEY_HEADER) or request.args.get(WRITE_KEY_PARAM)
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode('utf-8'), expected.encode('utf-8'))


def require_write_key(f):
    """Decorator rejecting writes without a valid write key (401)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not is_write_allowed():
            return jsonify({
                'error': 'unauthorized',
                'message': f'Provide {WRITE_KEY_HEADER} header or {WRITE_KEY_PARAM} query param.',
                'request_id': getattr(g, 'request_id', None)
            }), 401
        return f(*args, **kwargs)
    return decorated_function
