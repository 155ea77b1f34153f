# -*- coding: utf-8 -*-
"""
Trust Graph Models.

Append-only trust events, derived per-window scores, ranking eligibility
config and the trusted-source registry.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import (
    Column, String, Integer, BigInteger, Float, Boolean, DateTime, JSON,
    CheckConstraint, Index, UniqueConstraint,
)
from trustgraph.database import db


TRUST_EVENT_TYPES = (
    'task_completed',
    'task_failed',
    'task_disputed',
    'task_reversed',
    'task_timeout',
    'execution_proved',
    'execution_invalid',
    'wakeup_received',
    'wakeup_missed',
    'reaction_late',
    'payment_settled',
    'payment_reversed',
)

INTEGRITY_NEGATIVE_EVENT_TYPES = (
    'task_disputed',
    'task_reversed',
    'execution_invalid',
    'payment_reversed',
)

OUTCOMES = ('success', 'failure', 'neutral')

SCORE_WINDOWS = ('7d', '30d', '180d', 'all')

WINDOW_DAYS = {
    '7d': 7,
    '30d': 30,
    '180d': 180,
    'all': None,
}

# Score rows for agent-level (all skills) use this in place of NULL so the
# (subject, skill, window) primary key stays non-null.
AGENT_LEVEL_SKILL = ''


def _quoted(values):
    return ", ".join(f"'{v}'" for v in values)


def utcnow() -> datetime:
    """Current time as naive UTC, the storage convention for every timestamp."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def window_cutoff(now: datetime, window: str) -> Optional[datetime]:
    """Lower bound on occurred_at for a window; None means unbounded ('all')."""
    days = WINDOW_DAYS[window]
    if days is None:
        return None
    return now - timedelta(days=days)


def skill_key(skill_id: Optional[str]) -> str:
    return skill_id if skill_id else AGENT_LEVEL_SKILL


class TrustEvent(db.Model):
    """Immutable behavioral event about a subject agent."""
    __tablename__ = 'trust_events'

    id = Column(String(36), primary_key=True)
    subject_agent_id = Column(String(128), nullable=False)
    actor_agent_id = Column(String(128), nullable=True)
    skill_id = Column(String(128), nullable=True)  # NULL = agent-level
    source = Column(String(64), nullable=False)  # reporting integration, e.g. 'taskmint'
    event_type = Column(String(32), nullable=False)
    outcome = Column(String(16), nullable=False)
    severity = Column(Integer, nullable=False, default=50)  # 1-100
    value_usd_micros = Column(BigInteger, nullable=True)
    occurred_at = Column(DateTime, nullable=False)
    observed_at = Column(DateTime, nullable=False, default=utcnow)
    external_ref_type = Column(String(64), nullable=True)
    external_ref_id = Column(String(256), nullable=True)
    evidence = Column(JSON, nullable=True)

    __table_args__ = (
        CheckConstraint(f"event_type IN ({_quoted(TRUST_EVENT_TYPES)})", name='ck_trust_event_type'),
        CheckConstraint(f"outcome IN ({_quoted(OUTCOMES)})", name='ck_trust_event_outcome'),
        CheckConstraint('severity >= 1 AND severity <= 100', name='ck_trust_event_severity_range'),
        CheckConstraint('value_usd_micros IS NULL OR value_usd_micros >= 0', name='ck_trust_event_value'),
        UniqueConstraint('external_ref_type', 'external_ref_id', name='uq_trust_events_external_ref'),
        Index('ix_trust_events_subject_occurred', 'subject_agent_id', 'occurred_at'),
        Index('ix_trust_events_subject_skill', 'subject_agent_id', 'skill_id'),
        Index('ix_trust_events_source', 'source'),
    )

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'subject_agent_id': self.subject_agent_id,
            'actor_agent_id': self.actor_agent_id,
            'skill_id': self.skill_id,
            'source': self.source,
            'event_type': self.event_type,
            'outcome': self.outcome,
            'severity': self.severity,
            'value_usd_micros': self.value_usd_micros,
            'occurred_at': self.occurred_at.isoformat() if self.occurred_at else None,
            'observed_at': self.observed_at.isoformat() if self.observed_at else None,
            'external_ref_type': self.external_ref_type,
            'external_ref_id': self.external_ref_id,
            'evidence': self.evidence,
        }


class TrustScore(db.Model):
    """Derived scores for one (subject, skill, window). Written only by the recompute scheduler."""
    __tablename__ = 'trust_scores'

    subject_agent_id = Column(String(128), primary_key=True)
    skill_id = Column(String(128), primary_key=True, default=AGENT_LEVEL_SKILL)
    window = Column('score_window', String(8), primary_key=True)
    reliability = Column(Float, nullable=False, default=0.5)
    integrity = Column(Float, nullable=False, default=1.0)
    timeliness = Column(Float, nullable=False, default=0.0)
    composite = Column(Float, nullable=False, default=0.5)
    volume = Column(Integer, nullable=False, default=0)
    value_usd_micros = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(f"score_window IN ({_quoted(SCORE_WINDOWS)})", name='ck_trust_score_window'),
        CheckConstraint(
            'reliability >= 0 AND reliability <= 1 AND integrity >= 0 AND integrity <= 1 '
            'AND timeliness >= 0 AND timeliness <= 1 AND composite >= 0 AND composite <= 1',
            name='ck_trust_score_range'),
        Index('ix_trust_scores_window_composite', 'score_window', 'skill_id', 'composite'),
    )

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'subject_agent_id': self.subject_agent_id,
            'skill_id': self.skill_id or None,
            'window': self.window,
            'reliability': self.reliability,
            'integrity': self.integrity,
            'timeliness': self.timeliness,
            'composite': self.composite,
            'volume': self.volume,
            'value_usd_micros': self.value_usd_micros,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def get_for_key(cls, db, subject_agent_id: str, skill_id: Optional[str], window: str):
        """Get the score row for a subject, skill (None = agent-level) and window."""
        return db.query(cls).filter(
            cls.subject_agent_id == subject_agent_id,
            cls.skill_id == skill_key(skill_id),
            cls.window == window
        ).first()


class RankingConfig(db.Model):
    """Per-window leaderboard eligibility thresholds (anti-gaming)."""
    __tablename__ = 'ranking_config'

    window = Column('score_window', String(8), primary_key=True)
    min_events = Column(Integer, nullable=False, default=5)
    min_unique_sources = Column(Integer, nullable=False, default=2)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(f"score_window IN ({_quoted(SCORE_WINDOWS)})", name='ck_ranking_config_window'),
        CheckConstraint('min_events >= 0 AND min_unique_sources >= 0', name='ck_ranking_config_minimums'),
    )

    def to_dict(self):
        return {
            'window': self.window,
            'min_events': self.min_events,
            'min_unique_sources': self.min_unique_sources,
        }


class TrustedSource(db.Model):
    """Reporting integration flagged as verified (drives verified scope and badge)."""
    __tablename__ = 'trusted_sources'

    source = Column(String(64), primary_key=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    note = Column(String(256), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'source': self.source,
            'is_verified': self.is_verified,
            'note': self.note,
        }
