# -*- coding: utf-8 -*-
"""
Score recompute scheduler.

Keeps trust_scores consistent with trust_events under two triggers:

- lazy: right after ingest, for every (subject, skill) key that received
  events, across all windows (a backdated event can change several windows);
- stale sweep: in bounded batches, for keys whose latest event is newer than
  their 30d score row, or that have no score row yet.

This is the only writer of TrustScore rows. Concurrent recomputes of one key
are not serialized: each reads events fresh and the upsert only overwrites a
row computed at the same or an earlier time, so the last computation wins.
"""
import time
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import and_, func, or_

from trustgraph.models.trust import (
    TrustEvent, TrustScore, SCORE_WINDOWS, AGENT_LEVEL_SKILL,
    utcnow, window_cutoff, skill_key,
)
from trustgraph.infra.log import get_logger
from trustgraph.services.event_store import TrustEventStore, dialect_insert
from trustgraph.services.metrics import get_metrics_service
from trustgraph.services.scoring import compute_scores

logger = get_logger('trustgraph.recompute')

# Window whose updated_at marks a key as fresh for the stale sweep
STALENESS_WINDOW = '30d'

ScoreKey = Tuple[str, Optional[str]]


class RecomputeScheduler:
    """Recompute and persist trust scores for (subject, skill) keys."""

    def __init__(self, db, store: Optional[TrustEventStore] = None):
        """Initialize the scheduler with a database session and event store."""
        self.db = db
        self.store = store or TrustEventStore(db)

    def recompute_key(self, subject_agent_id: str, skill_id: Optional[str],
                      trigger: str = 'lazy') -> List[dict]:
        """
        Recompute every window for one key and upsert the four score rows.

        The rows are written in a single statement and committed together.
        Returns the computed rows.
        """
        started = time.time()
        now = utcnow()
        rows = []
        for window in SCORE_WINDOWS:
            events = self.store.events_for_key(subject_agent_id, skill_id, window_cutoff(now, window))
            result = compute_scores(subject_agent_id, skill_id, window, events)
            rows.append({
                'subject_agent_id': subject_agent_id,
                'skill_id': skill_key(skill_id),
                'score_window': window,
                'reliability': result['reliability'],
                'integrity': result['integrity'],
                'timeliness': result['timeliness'],
                'composite': result['composite'],
                'volume': result['volume'],
                'value_usd_micros': result['value_usd_micros'],
                'updated_at': now,
            })

        self._upsert_scores(rows)
        self.db.commit()

        metrics = get_metrics_service()
        if metrics:
            metrics.record_recompute(trigger, time.time() - started)
        return rows

    def _upsert_scores(self, rows: List[dict]):
        table = TrustScore.__table__
        stmt = dialect_insert(self.db, table).values(rows)
        stmt = stmt.on_conflict_do_update(
            index_elements=['subject_agent_id', 'skill_id', 'score_window'],
            set_={
                'reliability': stmt.excluded.reliability,
                'integrity': stmt.excluded.integrity,
                'timeliness': stmt.excluded.timeliness,
                'composite': stmt.excluded.composite,
                'volume': stmt.excluded.volume,
                'value_usd_micros': stmt.excluded.value_usd_micros,
                'updated_at': stmt.excluded.updated_at,
            },
            # last writer wins: never replace a newer computation with an older one
            where=table.c.updated_at <= stmt.excluded.updated_at,
        )
        self.db.execute(stmt)

    def recompute_keys(self, keys: Iterable[ScoreKey], trigger: str = 'lazy') -> int:
        """Recompute each distinct key once, in first-seen order."""
        started = time.time()
        seen = list(dict.fromkeys((subject, skill or None) for subject, skill in keys))
        for subject_agent_id, skill_id in seen:
            self.recompute_key(subject_agent_id, skill_id, trigger=trigger)

        logger.log_recompute_event(
            trigger, len(seen), round((time.time() - started) * 1000, 2))
        return len(seen)

    def get_stale_agent_score_keys(self, limit: int) -> List[ScoreKey]:
        """
        Keys needing recompute: no 30d score row, or latest event newer than it.

        Ordered by latest event occurred_at descending, then subject and skill.
        """
        latest = self.db.query(
            TrustEvent.subject_agent_id.label('subject_agent_id'),
            TrustEvent.skill_id.label('skill_id'),
            func.max(TrustEvent.occurred_at).label('latest_occurred')
        ).group_by(TrustEvent.subject_agent_id, TrustEvent.skill_id).subquery()

        scores = self.db.query(
            TrustScore.subject_agent_id.label('subject_agent_id'),
            TrustScore.skill_id.label('skill_id'),
            TrustScore.updated_at.label('updated_at')
        ).filter(TrustScore.window == STALENESS_WINDOW).subquery()

        rows = self.db.query(latest.c.subject_agent_id, latest.c.skill_id).outerjoin(
            scores,
            and_(
                scores.c.subject_agent_id == latest.c.subject_agent_id,
                scores.c.skill_id == func.coalesce(latest.c.skill_id, AGENT_LEVEL_SKILL)
            )
        ).filter(
            or_(scores.c.updated_at.is_(None), latest.c.latest_occurred > scores.c.updated_at)
        ).order_by(
            latest.c.latest_occurred.desc(),
            latest.c.subject_agent_id.asc(),
            func.coalesce(latest.c.skill_id, AGENT_LEVEL_SKILL).asc()
        ).limit(limit).all()

        return [(row.subject_agent_id, row.skill_id) for row in rows]

    def recompute_stale(self, batch_size: int) -> dict:
        """
        Recompute up to batch_size stale keys, one short transaction per key.

        A batch size of 0 (or less) disables the sweep: scores are then only
        updated lazily on ingest.
        """
        if batch_size <= 0:
            return {
                'processed': 0,
                'keys': [],
                'message': 'Lazy-only: no batch recompute (scores updated on ingest).',
            }

        stale = self.get_stale_agent_score_keys(batch_size)
        self.recompute_keys(stale, trigger='stale')
        return {
            'processed': len(stale),
            'keys': stale,
            'message': (
                'No stale scores to recompute.' if not stale
                else f'Recomputed {len(stale)} agent/skill score(s).'
            ),
        }

    def recompute_all(self) -> dict:
        """
        Recompute every key that has events or an existing score row.

        Score keys whose events are gone fall back to the no-signal result.
        """
        keys = [(row.subject_agent_id, row.skill_id) for row in self.store.distinct_keys()]
        score_keys = self.db.query(TrustScore.subject_agent_id, TrustScore.skill_id).distinct().all()
        keys.extend((row.subject_agent_id, row.skill_id or None) for row in score_keys)
        keys = sorted(set(keys), key=lambda k: (k[0], k[1] or AGENT_LEVEL_SKILL))

        processed = self.recompute_keys(keys, trigger='full')
        return {
            'processed': processed,
            'keys': keys,
            'message': f'Recomputed scores for {processed} agent/skill combination(s).',
        }
