# -*- coding: utf-8 -*-
"""
Trust read service.

Score lookups for the API and the dispatch gate, plus the public agent
profile and the operator dashboard.
"""
from typing import Dict, Optional
from urllib.parse import quote

from flask import current_app, has_app_context

from trustgraph.models.agent import Agent, Operator
from trustgraph.models.trust import TrustScore, utcnow
from trustgraph.services.badges import BadgeService
from trustgraph.services.errors import check_window
from trustgraph.services.event_store import TrustEventStore
from trustgraph.services.ranking import RankingEngine

DEFAULT_WINDOW = '30d'
DEFAULT_PUBLIC_BASE_URL = 'http://localhost:3040'

# Returned when a key has never been scored
NEUTRAL_SCORES = {
    'reliability': 0.5,
    'integrity': 1.0,
    'timeliness': 0.5,
    'composite': 0.5,
    'volume': 0,
}


def _score_payload(score: Optional[TrustScore]) -> Dict:
    if score is None:
        return {'scores': dict(NEUTRAL_SCORES), 'updated_at': utcnow().isoformat()}
    return {
        'scores': {
            'reliability': score.reliability,
            'integrity': score.integrity,
            'timeliness': score.timeliness,
            'composite': score.composite,
            'volume': score.volume,
        },
        'updated_at': score.updated_at.isoformat(),
    }


class TrustReadService:
    """Read-only views over persisted scores."""

    def __init__(self, db, public_base_url: Optional[str] = None):
        self.db = db
        self.store = TrustEventStore(db)
        self.ranking = RankingEngine(db)
        self.badges = BadgeService(db, store=self.store, ranking=self.ranking)
        if public_base_url is None and has_app_context():
            public_base_url = current_app.config.get('TRUSTGRAPH_PUBLIC_BASE_URL')
        self.public_base_url = (public_base_url or DEFAULT_PUBLIC_BASE_URL).rstrip('/')

    def get_score(self, agent_id: str, skill_id: Optional[str] = None,
                  window: str = DEFAULT_WINDOW) -> Dict:
        """
        Persisted scores for an agent (or agent + skill) in a window.

        Falls back to neutral scores when no row exists yet.
        """
        check_window(window)
        return _score_payload(TrustScore.get_for_key(self.db, agent_id, skill_id, window))

    def _rank_position(self, agent_id: str, window: str) -> Optional[int]:
        rank = self.ranking.get_rank(agent_id, window)
        return rank['rank'] if rank else None

    def get_profile(self, agent_id: str, window: str = DEFAULT_WINDOW) -> Optional[Dict]:
        """Public profile for an agent, or None when the agent is unknown."""
        check_window(window)
        agent = self.db.query(Agent).filter(Agent.id == agent_id).first()
        if agent is None:
            return None

        score = _score_payload(TrustScore.get_for_key(self.db, agent_id, None, window))
        scores = score['scores']
        return {
            'agent_id': agent_id,
            'display_name': agent.display_name,
            'operator_id': agent.operator_id,
            'composite': scores['composite'],
            'scores': {
                'reliability': scores['reliability'],
                'integrity': scores['integrity'],
                'timeliness': scores['timeliness'],
            },
            'rank_7d': self._rank_position(agent_id, '7d'),
            'rank_all_time': self._rank_position(agent_id, 'all'),
            'rank_change_7d': None,
            'badges': self.badges.compute_badges(agent_id, window),
            'proof_count': scores['volume'],
            'last_verified': score['updated_at'],
            'share_url': f"{self.public_base_url}/agent/{quote(agent_id, safe='')}",
            'window': window,
        }

    def get_operator_dashboard(self, operator_id: str, window: str = DEFAULT_WINDOW) -> Optional[Dict]:
        """Agents run by an operator with their ranks and the best performer."""
        check_window(window)
        operator = self.db.query(Operator).filter(Operator.id == operator_id).first()
        if operator is None:
            return None

        agents = []
        best_agent_id = None
        best_composite = -1.0
        for agent in self.db.query(Agent).filter(Agent.operator_id == operator_id).order_by(Agent.id).all():
            composite = self.get_score(agent.id, window=window)['scores']['composite']
            agents.append({
                'agent_id': agent.id,
                'display_name': agent.display_name,
                'composite': composite,
                'rank_7d': self._rank_position(agent.id, '7d'),
                'rank_all_time': self._rank_position(agent.id, 'all'),
            })
            if composite > best_composite:
                best_composite = composite
                best_agent_id = agent.id

        return {
            'operator_id': operator_id,
            'display_name': operator.display_name,
            'agents': agents,
            'best_agent_id': best_agent_id,
            'window': window,
        }

    def health(self) -> Dict:
        """Store round-trip check; never raises."""
        try:
            self.store.ping()
            return {'ok': True}
        except Exception as e:
            self.db.rollback()
            return {'ok': False, 'error': str(e)}
