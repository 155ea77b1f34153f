# -*- coding: utf-8 -*-
"""
Trust event store.

Thin handle over a SQLAlchemy session for the append-only trust_events table
and the agent registry. Constructed explicitly and passed to the ingest,
recompute, ranking and badge services.
"""
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, or_, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from trustgraph.models.agent import Agent
from trustgraph.models.trust import TrustEvent, TrustedSource, utcnow

# Driver error codes for a unique-constraint violation
PG_UNIQUE_VIOLATION = '23505'
SQLITE_UNIQUE_VIOLATIONS = ('SQLITE_CONSTRAINT_UNIQUE', 'SQLITE_CONSTRAINT_PRIMARYKEY')


def dialect_insert(db, target):
    """INSERT construct supporting ON CONFLICT for the session's dialect."""
    dialect = db.get_bind().dialect.name
    if dialect == 'postgresql':
        return postgresql.insert(target)
    if dialect == 'sqlite':
        return sqlite.insert(target)
    raise NotImplementedError(f"Upserts are not supported on dialect {dialect!r}")


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when the driver reports a unique/primary key violation."""
    orig = getattr(exc, 'orig', None)
    if getattr(orig, 'sqlstate', None) == PG_UNIQUE_VIOLATION:
        return True
    if getattr(orig, 'pgcode', None) == PG_UNIQUE_VIOLATION:
        return True
    return getattr(orig, 'sqlite_errorname', None) in SQLITE_UNIQUE_VIOLATIONS


def apply_skill_filter(query, skill_id: Optional[str]):
    """
    Restrict an event query to a skill scope.

    A skill-scoped read includes agent-level events (skill IS NULL); an
    agent-level read includes only agent-level events.
    """
    if skill_id:
        return query.filter(or_(TrustEvent.skill_id.is_(None), TrustEvent.skill_id == skill_id))
    return query.filter(TrustEvent.skill_id.is_(None))


def apply_badge_scope(query, skill_id: Optional[str]):
    """
    Restrict an event query for badge checks.

    Agent-level badges look at every event for the subject, whatever its skill.
    """
    if skill_id:
        return apply_skill_filter(query, skill_id)
    return query


class TrustEventStore:
    """Insert/read operations against trust_events."""

    def __init__(self, db):
        """Initialize the store with a database session."""
        self.db = db

    def ensure_agent(self, agent_id: str, seen_at: Optional[datetime] = None):
        """Register an agent, or bump last_seen_at if it already exists."""
        seen_at = seen_at or utcnow()
        stmt = dialect_insert(self.db, Agent.__table__).values(
            id=agent_id, created_at=seen_at, last_seen_at=seen_at)
        stmt = stmt.on_conflict_do_update(
            index_elements=['id'],
            set_={'last_seen_at': stmt.excluded.last_seen_at}
        )
        self.db.execute(stmt)

    def insert_event(self, record: Dict) -> bool:
        """
        Insert one normalized event row. Does not commit.

        Returns False when an event with the same (external_ref_type,
        external_ref_id) already exists; any other store failure propagates.
        """
        stmt = dialect_insert(self.db, TrustEvent.__table__).values(**record)
        has_ref = record.get('external_ref_type') is not None and record.get('external_ref_id') is not None
        if has_ref:
            stmt = stmt.on_conflict_do_nothing(
                index_elements=['external_ref_type', 'external_ref_id'])
        result = self.db.execute(stmt)
        return result.rowcount > 0

    def events_for_key(self, subject_agent_id: str, skill_id: Optional[str],
                       since: Optional[datetime]) -> List[TrustEvent]:
        """Events for a subject and skill scope with occurred_at >= since, oldest first."""
        query = self.db.query(TrustEvent).filter(TrustEvent.subject_agent_id == subject_agent_id)
        query = apply_skill_filter(query, skill_id)
        if since is not None:
            query = query.filter(TrustEvent.occurred_at >= since)
        return query.order_by(TrustEvent.occurred_at.asc(), TrustEvent.id.asc()).all()

    def in_window(self, query, since: Optional[datetime]):
        if since is not None:
            query = query.filter(TrustEvent.occurred_at >= since)
        return query

    def distinct_keys(self):
        """All (subject_agent_id, skill_id) pairs with at least one event."""
        return self.db.query(TrustEvent.subject_agent_id, TrustEvent.skill_id).distinct().all()

    def count_integrity_negative(self, subject_agent_id: str, skill_id: Optional[str],
                                 since: Optional[datetime], event_types) -> int:
        query = self.db.query(func.count(TrustEvent.id)).filter(
            TrustEvent.subject_agent_id == subject_agent_id,
            TrustEvent.event_type.in_(event_types)
        )
        query = apply_badge_scope(query, skill_id)
        return self.in_window(query, since).scalar() or 0

    def count_unverified(self, subject_agent_id: str, skill_id: Optional[str],
                         since: Optional[datetime]) -> int:
        """Number of in-window events whose source is not a verified trusted source."""
        query = self.db.query(func.count(TrustEvent.id)).outerjoin(
            TrustedSource,
            (TrustedSource.source == TrustEvent.source) & TrustedSource.is_verified.is_(True)
        ).filter(
            TrustEvent.subject_agent_id == subject_agent_id,
            TrustedSource.source.is_(None)
        )
        query = apply_badge_scope(query, skill_id)
        return self.in_window(query, since).scalar() or 0

    def ping(self):
        """Round-trip to the store; raises if it is unavailable."""
        return self.db.execute(text("SELECT 1")).scalar()
