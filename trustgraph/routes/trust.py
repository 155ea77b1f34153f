# -*- coding: utf-8 -*-
"""
Trust API Routes.

Event ingest, score reads, rank, the dispatch gate and the stale recompute
trigger. Handlers validate, call one service operation and map the result;
service errors are turned into responses by trustgraph.middleware.errors.
"""
from flask import Blueprint, current_app, jsonify, request, g

from trustgraph.infra.auth import require_write_key
from trustgraph.infra.db import get_db
from trustgraph.schemas.trust_schemas import (
    EventCreateSchema,
    EventBatchSchema,
    ScoreQuerySchema,
    RankQuerySchema,
    DispatchGateQuerySchema,
    RecomputeRequestSchema,
    RankingConfigSchema,
)
from trustgraph.services.gatekeeper import check_dispatch_gate
from trustgraph.services.ingest import EventIngestService
from trustgraph.services.ranking import RankingEngine
from trustgraph.services.recompute import RecomputeScheduler
from trustgraph.services.trust_read import TrustReadService

trust_bp = Blueprint('trust', __name__, url_prefix='/trust')


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


# ==================== INGEST ====================

@trust_bp.route('/events', methods=['POST'])
@require_write_key
def create_event():
    """Ingest one event. 409 when its external ref was already ingested."""
    data = EventCreateSchema().load(_json_body())

    db = next(get_db())
    result = EventIngestService(db).ingest_one(data)

    result['request_id'] = getattr(g, 'request_id', None)
    return jsonify(result), 201


@trust_bp.route('/events/batch', methods=['POST'])
@require_write_key
def create_event_batch():
    """Ingest many events; idempotency conflicts are counted as skipped."""
    data = EventBatchSchema().load(_json_body())

    db = next(get_db())
    result = EventIngestService(db).ingest_batch(data['events'])

    result['request_id'] = getattr(g, 'request_id', None)
    return jsonify(result), 201


# ==================== SCORES ====================

@trust_bp.route('/agents/<agent_id>', methods=['GET'])
def get_agent_score(agent_id):
    args = ScoreQuerySchema().load(request.args)
    db = next(get_db())
    return jsonify(TrustReadService(db).get_score(agent_id, window=args['window'])), 200


@trust_bp.route('/agents/<agent_id>/skills/<skill_id>', methods=['GET'])
def get_skill_score(agent_id, skill_id):
    args = ScoreQuerySchema().load(request.args)
    db = next(get_db())
    return jsonify(TrustReadService(db).get_score(agent_id, skill_id, window=args['window'])), 200


@trust_bp.route('/agents/<agent_id>/rank', methods=['GET'])
def get_agent_rank(agent_id):
    """Rank among eligible agents; 404 when the agent does not qualify."""
    args = RankQuerySchema().load(request.args)

    db = next(get_db())
    rank = RankingEngine(db).get_rank(agent_id, args['window'], args['skill_id'], args['scope'])
    if rank is None:
        return jsonify({
            'error': 'not_ranked',
            'message': 'Agent is not eligible for ranking in this window',
            'agent_id': agent_id,
            'request_id': getattr(g, 'request_id', None)
        }), 404

    return jsonify({
        'agent_id': agent_id,
        'window': args['window'],
        'scope': args['scope'],
        'skill_id': args['skill_id'],
        'rank': rank['rank'],
        'total': rank['total'],
    }), 200


@trust_bp.route('/gate/dispatch', methods=['GET'])
def dispatch_gate():
    """Dispatch decision for the runtime: refuse when reliability is below threshold."""
    args = DispatchGateQuerySchema().load(request.args)
    db = next(get_db())
    return jsonify(check_dispatch_gate(TrustReadService(db), args['agent_id'], args['window'])), 200


# ==================== RECOMPUTE / CONFIG ====================

@trust_bp.route('/scores/recompute', methods=['POST'])
@require_write_key
def recompute_stale_scores():
    """Run one stale sweep. batch_size defaults to SCORE_RECOMPUTE_BATCH_SIZE."""
    data = RecomputeRequestSchema().load(_json_body())
    batch_size = data['batch_size']
    if batch_size is None:
        batch_size = current_app.config['SCORE_RECOMPUTE_BATCH_SIZE']

    db = next(get_db())
    result = RecomputeScheduler(db).recompute_stale(batch_size)

    return jsonify({
        'processed': result['processed'],
        'message': result['message'],
        'keys': [
            {'agent_id': subject, 'skill_id': skill}
            for subject, skill in result['keys']
        ],
        'request_id': getattr(g, 'request_id', None)
    }), 200


@trust_bp.route('/ranking-config/<window>', methods=['GET'])
def get_ranking_config(window):
    db = next(get_db())
    engine = RankingEngine(db)
    config = engine.get_ranking_config(window)
    config['window'] = window
    return jsonify(config), 200


@trust_bp.route('/ranking-config/<window>', methods=['PUT'])
@require_write_key
def set_ranking_config(window):
    data = RankingConfigSchema().load(_json_body())
    db = next(get_db())
    config = RankingEngine(db).set_ranking_config(window, data['min_events'], data['min_unique_sources'])
    config['window'] = window
    return jsonify(config), 200
