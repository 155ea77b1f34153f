# -*- coding: utf-8 -*-

from flask import Blueprint, jsonify
import time

from trustgraph.infra.db import get_db
from trustgraph.services.trust_read import TrustReadService

health_bp = Blueprint('health', __name__)


@health_bp.route('/healthz', methods=['GET', 'HEAD'])
def healthz():
    """Liveness: the process is up. Does not touch the store."""
    return jsonify({
        'status': 'healthy',
        'service': 'trustgraph',
        'timestamp': time.time()
    }), 200


@health_bp.route('/readyz', methods=['GET', 'HEAD'])
def readyz():
    """Readiness: the trust store answers a round-trip query."""
    db = next(get_db())
    store = TrustReadService(db).health()
    body = {
        'status': 'ready' if store['ok'] else 'not_ready',
        'service': 'trustgraph',
        'timestamp': time.time(),
        'checks': {
            'database': store['ok']
        }
    }
    if not store['ok']:
        body['error'] = store['error']
        return jsonify(body), 503
    return jsonify(body), 200
