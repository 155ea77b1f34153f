# -*- coding: utf-8 -*-
"""
Trust event ingest.

Inserts validated events (idempotent on external_ref_type/external_ref_id when
both are present) and triggers the lazy recompute for every affected
(subject, skill) key before returning.
"""
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from trustgraph.models.trust import to_naive_utc, utcnow
from trustgraph.infra.log import get_logger
from trustgraph.services.errors import DuplicateEventError
from trustgraph.services.event_store import TrustEventStore, is_unique_violation
from trustgraph.services.metrics import get_metrics_service
from trustgraph.services.recompute import RecomputeScheduler

logger = get_logger('trustgraph.ingest')


def _blank_to_none(value):
    if value is None or value == '':
        return None
    return value


def normalize_event(data: Dict, observed_at: Optional[datetime] = None) -> Dict:
    """Build a trust_events row from a validated event payload."""
    occurred_at = data['occurred_at']
    if isinstance(occurred_at, str):
        occurred_at = datetime.fromisoformat(occurred_at.replace('Z', '+00:00'))

    return {
        'id': str(uuid.uuid4()),
        'subject_agent_id': data['subject_agent_id'],
        'actor_agent_id': _blank_to_none(data.get('actor_agent_id')),
        'skill_id': _blank_to_none(data.get('skill_id')),
        'source': data['source'],
        'event_type': data['event_type'],
        'outcome': data['outcome'].lower(),
        'severity': max(1, min(100, int(data['severity']))),
        'value_usd_micros': data.get('value_usd_micros'),
        'occurred_at': to_naive_utc(occurred_at),
        'observed_at': observed_at or utcnow(),
        'external_ref_type': _blank_to_none(data.get('external_ref_type')),
        'external_ref_id': _blank_to_none(data.get('external_ref_id')),
        'evidence': data.get('evidence'),
    }


class EventIngestService:
    """Single and batch event ingest with inline score recompute."""

    def __init__(self, db, store: Optional[TrustEventStore] = None,
                 scheduler: Optional[RecomputeScheduler] = None):
        self.db = db
        self.store = store or TrustEventStore(db)
        self.scheduler = scheduler or RecomputeScheduler(db, store=self.store)

    def _insert(self, record: Dict) -> bool:
        """
        Insert and commit one event. False means an idempotency conflict.

        A unique violation raised by a concurrent writer (instead of the
        ON CONFLICT path) is also reported as a conflict; every other store
        failure is rolled back and re-raised.
        """
        try:
            self.store.ensure_agent(record['subject_agent_id'])
            if record['actor_agent_id']:
                self.store.ensure_agent(record['actor_agent_id'])
            inserted = self.store.insert_event(record)
            self.db.commit()
            return inserted
        except IntegrityError as e:
            self.db.rollback()
            if record['external_ref_id'] is not None and is_unique_violation(e):
                return False
            raise
        except Exception:
            self.db.rollback()
            raise

    def ingest_one(self, data: Dict) -> Dict:
        """
        Ingest a single event and recompute its key.

        Raises DuplicateEventError when the external ref was already ingested.
        """
        record = normalize_event(data)
        if not self._insert(record):
            logger.log_idempotency_event(
                'conflict',
                external_ref_type=record['external_ref_type'],
                external_ref_id=record['external_ref_id'],
            )
            metrics = get_metrics_service()
            if metrics:
                metrics.record_ingest(0, 1)
            raise DuplicateEventError(record['external_ref_type'], record['external_ref_id'])

        self.scheduler.recompute_key(record['subject_agent_id'], record['skill_id'], trigger='lazy')

        metrics = get_metrics_service()
        if metrics:
            metrics.record_ingest(1, 0)
        logger.info(
            "Trust event ingested",
            event_id=record['id'],
            subject_agent_id=record['subject_agent_id'],
            skill_id=record['skill_id'],
            event_type=record['event_type'],
            source=record['source'],
        )
        return {'id': record['id']}

    def ingest_batch(self, events: List[Dict]) -> Dict:
        """
        Ingest many events; duplicates are skipped, not errors.

        Each distinct (subject, skill) key that received at least one new
        event is recomputed exactly once after all inserts. An unexpected
        store failure aborts the batch (earlier events stay committed).
        """
        ids = []
        inserted = 0
        skipped = 0
        recompute_keys = {}

        for data in events:
            record = normalize_event(data)
            if self._insert(record):
                inserted += 1
                ids.append(record['id'])
                recompute_keys[(record['subject_agent_id'], record['skill_id'])] = None
            else:
                skipped += 1
                logger.log_idempotency_event(
                    'skipped',
                    external_ref_type=record['external_ref_type'],
                    external_ref_id=record['external_ref_id'],
                )

        self.scheduler.recompute_keys(recompute_keys, trigger='lazy')

        metrics = get_metrics_service()
        if metrics:
            metrics.record_ingest(inserted, skipped)
        logger.info(
            "Trust event batch ingested",
            inserted=inserted,
            skipped=skipped,
            recomputed_keys=len(recompute_keys),
        )
        return {'inserted': inserted, 'skipped': skipped, 'ids': ids}
