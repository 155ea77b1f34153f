# -*- coding: utf-8 -*-
"""
Public (no key) surfaces: leaderboard, agent profile and operator dashboard.
"""
from flask import Blueprint, current_app, jsonify, request, g

from trustgraph.infra.db import get_db
from trustgraph.schemas.trust_schemas import LeaderboardQuerySchema, ScoreQuerySchema
from trustgraph.services.ranking import RankingEngine
from trustgraph.services.trust_read import TrustReadService

public_bp = Blueprint('public', __name__)


@public_bp.route('/leaderboard', methods=['GET'])
def leaderboard():
    """
    Ranked, eligibility-filtered leaderboard.

    Query: window (default 30d), scope (all | verified), skill_id, limit
    (capped at MAX_LEADERBOARD_LIMIT), offset.
    """
    args = LeaderboardQuerySchema().load(request.args)
    limit = min(args['limit'], current_app.config['MAX_LEADERBOARD_LIMIT'])

    db = next(get_db())
    rows = RankingEngine(db).get_leaderboard(
        window=args['window'],
        scope=args['scope'],
        skill_id=args['skill_id'],
        limit=limit,
        offset=args['offset'],
    )

    return jsonify({
        'window': args['window'],
        'scope': args['scope'],
        'skill_id': args['skill_id'],
        'limit': limit,
        'offset': args['offset'],
        'leaderboard': rows,
    }), 200


@public_bp.route('/agent/<agent_id>', methods=['GET'])
def agent_profile(agent_id):
    args = ScoreQuerySchema().load(request.args)

    db = next(get_db())
    profile = TrustReadService(db).get_profile(agent_id, args['window'])
    if profile is None:
        return jsonify({
            'error': 'agent_not_found',
            'message': 'Agent not found',
            'agent_id': agent_id,
            'request_id': getattr(g, 'request_id', None)
        }), 404
    return jsonify(profile), 200


@public_bp.route('/operator/<operator_id>', methods=['GET'])
def operator_dashboard(operator_id):
    args = ScoreQuerySchema().load(request.args)

    db = next(get_db())
    dashboard = TrustReadService(db).get_operator_dashboard(operator_id, args['window'])
    if dashboard is None:
        return jsonify({
            'error': 'operator_not_found',
            'message': 'Operator not found',
            'operator_id': operator_id,
            'request_id': getattr(g, 'request_id', None)
        }), 404
    return jsonify(dashboard), 200
