# -*- coding: utf-8 -*-
"""
Badge overlay.

Computed at read time from the current score row, the agent's rank and raw
event counts. Never touches trust_scores; cache_badges() stores the result in
agent_badges for leaderboard rows.
"""
from typing import Dict, List, Optional

from trustgraph.models.badges import AgentBadge, BadgeDefinition, DEFAULT_BADGE_DEFINITIONS
from trustgraph.models.trust import (
    TrustScore, INTEGRITY_NEGATIVE_EVENT_TYPES, utcnow, window_cutoff, skill_key,
)
from trustgraph.infra.log import get_logger
from trustgraph.services.errors import check_window
from trustgraph.services.event_store import TrustEventStore
from trustgraph.services.ranking import RankingEngine

logger = get_logger('trustgraph.badges')

CLEAN_HISTORY_MIN_INTEGRITY = 0.99
FAST_RESPONDER_MIN_TIMELINESS = 0.9
FAST_RESPONDER_MIN_VOLUME = 3

# Tightest threshold first; only the first match is awarded
PERCENTILE_BADGES = (
    (0.01, 'top_1'),
    (0.05, 'top_5'),
    (0.10, 'top_10'),
)


class BadgeService:
    """Qualitative labels derived from scores, rank and event history."""

    def __init__(self, db, store: Optional[TrustEventStore] = None,
                 ranking: Optional[RankingEngine] = None):
        self.db = db
        self.store = store or TrustEventStore(db)
        self.ranking = ranking or RankingEngine(db)

    def _badge_names(self) -> Dict[str, str]:
        names = {slug: name for slug, name, _, _ in DEFAULT_BADGE_DEFINITIONS}
        for definition in self.db.query(BadgeDefinition).all():
            names[definition.slug] = definition.name
        return names

    def compute_slugs(self, agent_id: str, window: str, skill_id: Optional[str] = None) -> List[str]:
        """Badge slugs earned by an agent; empty when it has no score row."""
        check_window(window)
        score = TrustScore.get_for_key(self.db, agent_id, skill_id, window)
        if score is None:
            return []

        since = window_cutoff(utcnow(), window)
        slugs = []

        integrity_negative = self.store.count_integrity_negative(
            agent_id, skill_id, since, INTEGRITY_NEGATIVE_EVENT_TYPES)
        if integrity_negative == 0 and score.integrity >= CLEAN_HISTORY_MIN_INTEGRITY:
            slugs.append('clean_history')

        rank = self.ranking.get_rank(agent_id, window, skill_id)
        if rank and rank['total'] > 0:
            pct = rank['rank'] / rank['total']
            for threshold, slug in PERCENTILE_BADGES:
                if pct <= threshold:
                    slugs.append(slug)
                    break

        if score.timeliness >= FAST_RESPONDER_MIN_TIMELINESS and score.volume >= FAST_RESPONDER_MIN_VOLUME:
            slugs.append('fast_responder')

        if score.volume >= 1 and self.store.count_unverified(agent_id, skill_id, since) == 0:
            slugs.append('verified_executor')

        return slugs

    def compute_badges(self, agent_id: str, window: str, skill_id: Optional[str] = None) -> List[Dict[str, str]]:
        """Badges as {slug, name} for display."""
        slugs = self.compute_slugs(agent_id, window, skill_id)
        if not slugs:
            return []
        names = self._badge_names()
        return [{'slug': slug, 'name': names.get(slug, slug)} for slug in slugs]

    def cache_badges(self, agent_id: str, window: str, skill_id: Optional[str] = None) -> List[str]:
        """Replace the cached badge set for (agent, window, skill)."""
        slugs = self.compute_slugs(agent_id, window, skill_id)
        key = skill_key(skill_id)
        self.db.query(AgentBadge).filter(
            AgentBadge.subject_agent_id == agent_id,
            AgentBadge.window == window,
            AgentBadge.skill_id == key
        ).delete(synchronize_session=False)
        awarded_at = utcnow()
        for slug in slugs:
            self.db.add(AgentBadge(
                subject_agent_id=agent_id,
                window=window,
                skill_id=key,
                badge_slug=slug,
                awarded_at=awarded_at,
            ))
        self.db.commit()
        logger.debug("Badge cache refreshed", agent_id=agent_id, window=window, badges=slugs)
        return slugs
