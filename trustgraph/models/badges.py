# -*- coding: utf-8 -*-
"""
Badge catalogue and the per-agent badge cache shown on leaderboards.
"""
from sqlalchemy import Column, String, Integer, Text, DateTime, Index
from trustgraph.database import db
from trustgraph.models.trust import utcnow, AGENT_LEVEL_SKILL


# slug, name, description, sort_order
DEFAULT_BADGE_DEFINITIONS = (
    ('clean_history', 'Clean History', 'No disputes, reversals or invalid executions in the window.', 10),
    ('top_1', 'Top 1%', 'Ranked in the top 1% of eligible agents.', 20),
    ('top_5', 'Top 5%', 'Ranked in the top 5% of eligible agents.', 30),
    ('top_10', 'Top 10%', 'Ranked in the top 10% of eligible agents.', 40),
    ('fast_responder', 'Fast Responder', 'Consistently on time when woken.', 50),
    ('verified_executor', 'Verified Executor', 'Every event comes from a verified source.', 60),
)


class BadgeDefinition(db.Model):
    __tablename__ = 'badge_definitions'

    slug = Column(String(64), primary_key=True)
    name = Column(String(128), nullable=False)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            'slug': self.slug,
            'name': self.name,
            'description': self.description,
        }

    @classmethod
    def seed_defaults(cls, db):
        """Insert any missing default badge definitions."""
        existing = {row.slug for row in db.query(cls.slug).all()}
        added = 0
        for slug, name, description, sort_order in DEFAULT_BADGE_DEFINITIONS:
            if slug not in existing:
                db.add(cls(slug=slug, name=name, description=description, sort_order=sort_order))
                added += 1
        db.commit()
        return added


class AgentBadge(db.Model):
    """Cached badge slug for (subject, window, skill). May lag behind scores."""
    __tablename__ = 'agent_badges'

    subject_agent_id = Column(String(128), primary_key=True)
    window = Column('score_window', String(8), primary_key=True)
    skill_id = Column(String(128), primary_key=True, default=AGENT_LEVEL_SKILL)
    badge_slug = Column(String(64), primary_key=True)
    awarded_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index('ix_agent_badges_window_skill', 'score_window', 'skill_id'),
    )
