# -*- coding: utf-8 -*-
"""
Ranking engine: agent rank and the public leaderboard.

Both views are read from one ranked set per (window, scope, skill):

- eligible: score volume >= min_events and at least min_unique_sources
  distinct event sources for the subject in the window (counted from raw
  events, not from the score row);
- verified scope: additionally at least one in-window event from a verified
  trusted source;
- order: composite descending, then subject id ascending.
"""
from typing import Dict, List, Optional

from sqlalchemy import func, select

from trustgraph.models.badges import AgentBadge
from trustgraph.models.trust import (
    TrustEvent, TrustScore, TrustedSource, RankingConfig,
    utcnow, window_cutoff, skill_key,
)
from trustgraph.infra.log import get_logger
from trustgraph.services.errors import check_scope, check_window
from trustgraph.services.event_store import dialect_insert

logger = get_logger('trustgraph.ranking')

DEFAULT_MIN_EVENTS = 5
DEFAULT_MIN_UNIQUE_SOURCES = 2
DEFAULT_LEADERBOARD_LIMIT = 100


class RankingEngine:
    """Eligibility-filtered ranking over persisted trust scores."""

    def __init__(self, db):
        """Initialize ranking engine with database session."""
        self.db = db

    def get_ranking_config(self, window: str) -> Dict[str, int]:
        """Eligibility thresholds for a window; defaults when no row exists."""
        check_window(window)
        row = self.db.query(RankingConfig).filter(RankingConfig.window == window).first()
        if row is None:
            return {'min_events': DEFAULT_MIN_EVENTS, 'min_unique_sources': DEFAULT_MIN_UNIQUE_SOURCES}
        return {'min_events': row.min_events, 'min_unique_sources': row.min_unique_sources}

    def set_ranking_config(self, window: str, min_events: int, min_unique_sources: int) -> Dict[str, int]:
        check_window(window)
        stmt = dialect_insert(self.db, RankingConfig.__table__).values(
            score_window=window,
            min_events=min_events,
            min_unique_sources=min_unique_sources,
            updated_at=utcnow(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=['score_window'],
            set_={
                'min_events': stmt.excluded.min_events,
                'min_unique_sources': stmt.excluded.min_unique_sources,
                'updated_at': stmt.excluded.updated_at,
            }
        )
        self.db.execute(stmt)
        self.db.commit()
        logger.info(
            "Ranking config updated",
            window=window,
            min_events=min_events,
            min_unique_sources=min_unique_sources,
        )
        return {'min_events': min_events, 'min_unique_sources': min_unique_sources}

    def _ranked(self, window: str, scope: str, skill_id: Optional[str]):
        """Subquery of eligible subjects with their 1-based rank."""
        check_window(window)
        check_scope(scope)
        cfg = self.get_ranking_config(window)
        since = window_cutoff(utcnow(), window)

        sources_query = self.db.query(
            TrustEvent.subject_agent_id.label('subject_agent_id'),
            func.count(TrustEvent.source.distinct()).label('unique_sources')
        )
        if since is not None:
            sources_query = sources_query.filter(TrustEvent.occurred_at >= since)
        sources = sources_query.group_by(TrustEvent.subject_agent_id).subquery()

        rank = func.row_number().over(
            order_by=(TrustScore.composite.desc(), TrustScore.subject_agent_id.asc())
        ).label('rank')

        query = self.db.query(
            TrustScore.subject_agent_id.label('subject_agent_id'),
            TrustScore.composite.label('composite'),
            TrustScore.volume.label('volume'),
            rank
        ).outerjoin(
            sources, sources.c.subject_agent_id == TrustScore.subject_agent_id
        ).filter(
            TrustScore.window == window,
            TrustScore.skill_id == skill_key(skill_id),
            TrustScore.volume >= cfg['min_events'],
            func.coalesce(sources.c.unique_sources, 0) >= cfg['min_unique_sources']
        )

        if scope == 'verified':
            verified = select(TrustEvent.id).join(
                TrustedSource, TrustedSource.source == TrustEvent.source
            ).where(
                TrustedSource.is_verified.is_(True),
                TrustEvent.subject_agent_id == TrustScore.subject_agent_id
            )
            if since is not None:
                verified = verified.where(TrustEvent.occurred_at >= since)
            query = query.filter(verified.exists())

        return query.subquery()

    def get_rank(self, agent_id: str, window: str, skill_id: Optional[str] = None,
                 scope: str = 'all') -> Optional[Dict[str, int]]:
        """
        Rank (1-based) and eligible population size for an agent.

        Returns None when the agent is not currently eligible.
        """
        ranked = self._ranked(window, scope, skill_id)
        position = self.db.query(ranked.c.rank).filter(ranked.c.subject_agent_id == agent_id).scalar()
        if position is None:
            return None
        total = self.db.query(func.count()).select_from(ranked).scalar()
        return {'rank': int(position), 'total': int(total)}

    def get_leaderboard(self, window: str = '30d', scope: str = 'all', skill_id: Optional[str] = None,
                        limit: int = DEFAULT_LEADERBOARD_LIMIT, offset: int = 0) -> List[Dict]:
        """One page of the ranked set, with cached badge slugs attached."""
        ranked = self._ranked(window, scope, skill_id)
        rows = self.db.query(ranked).order_by(ranked.c.rank.asc()).offset(offset).limit(limit).all()

        badges = self._cached_badges([row.subject_agent_id for row in rows], window, skill_id)
        return [
            {
                'rank': int(row.rank),
                'agent_id': row.subject_agent_id,
                'composite': row.composite,
                'volume': row.volume,
                'rank_change': None,
                'badges': badges.get(row.subject_agent_id, []),
            }
            for row in rows
        ]

    def _cached_badges(self, agent_ids: List[str], window: str, skill_id: Optional[str]) -> Dict[str, List[str]]:
        if not agent_ids:
            return {}
        cached = self.db.query(AgentBadge.subject_agent_id, AgentBadge.badge_slug).filter(
            AgentBadge.subject_agent_id.in_(agent_ids),
            AgentBadge.window == window,
            AgentBadge.skill_id == skill_key(skill_id)
        ).order_by(AgentBadge.subject_agent_id, AgentBadge.badge_slug).all()

        badges = {}
        for subject_agent_id, slug in cached:
            badges.setdefault(subject_agent_id, []).append(slug)
        return badges
