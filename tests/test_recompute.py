# -*- coding: utf-8 -*-
"""
Tests for the recompute scheduler (stale sweep, full recompute, upsert rules).
"""
from datetime import timedelta

from trustgraph.models.trust import TrustScore, utcnow
from trustgraph.services.event_store import TrustEventStore
from trustgraph.services.ingest import normalize_event
from trustgraph.services.recompute import RecomputeScheduler


def store_event(session, payload):
    """Insert an event without triggering the lazy recompute."""
    store = TrustEventStore(session)
    record = normalize_event(payload)
    store.insert_event(record)
    session.commit()
    return record


def test_unscored_key_is_stale_until_recomputed(session, make_event):
    store_event(session, make_event())
    scheduler = RecomputeScheduler(session)

    assert scheduler.get_stale_agent_score_keys(10) == [('agent-a', None)]

    result = scheduler.recompute_stale(10)
    assert result['processed'] == 1
    assert result['message'] == 'Recomputed 1 agent/skill score(s).'
    assert scheduler.get_stale_agent_score_keys(10) == []


def test_newer_event_makes_key_stale_again(session, make_event):
    scheduler = RecomputeScheduler(session)
    store_event(session, make_event())
    scheduler.recompute_stale(10)

    store_event(session, make_event(occurred_at=utcnow() + timedelta(minutes=5)))

    assert scheduler.get_stale_agent_score_keys(10) == [('agent-a', None)]


def test_empty_sweep_message(session):
    result = RecomputeScheduler(session).recompute_stale(10)

    assert result['processed'] == 0
    assert result['message'] == 'No stale scores to recompute.'


def test_zero_batch_size_is_lazy_only(session, make_event):
    store_event(session, make_event())
    scheduler = RecomputeScheduler(session)

    result = scheduler.recompute_stale(0)

    assert result['processed'] == 0
    assert result['message'] == 'Lazy-only: no batch recompute (scores updated on ingest).'
    assert session.query(TrustScore).count() == 0


def test_stale_keys_ordered_by_latest_event_then_subject(session, make_event):
    now = utcnow()
    store_event(session, make_event(subject='agent-old', occurred_at=now - timedelta(days=3)))
    store_event(session, make_event(subject='agent-b', occurred_at=now - timedelta(hours=1)))
    store_event(session, make_event(subject='agent-a', occurred_at=now - timedelta(hours=1)))
    store_event(session, make_event(subject='agent-a', skill_id='search', occurred_at=now - timedelta(hours=1)))

    keys = RecomputeScheduler(session).get_stale_agent_score_keys(10)

    assert keys == [
        ('agent-a', None),
        ('agent-a', 'search'),
        ('agent-b', None),
        ('agent-old', None),
    ]
    assert RecomputeScheduler(session).get_stale_agent_score_keys(2) == keys[:2]


def test_recompute_key_writes_all_windows(session, make_event):
    store_event(session, make_event(event_type='task_failed', outcome='failure'))
    rows = RecomputeScheduler(session).recompute_key('agent-a', None)

    assert [r['score_window'] for r in rows] == ['7d', '30d', '180d', 'all']
    assert session.query(TrustScore).filter_by(subject_agent_id='agent-a').count() == 4
    assert TrustScore.get_for_key(session, 'agent-a', None, '7d').reliability == 0.0


def test_upsert_never_replaces_a_newer_row(session, make_event):
    future = utcnow() + timedelta(days=1)
    for window in ('7d', '30d', '180d', 'all'):
        session.add(TrustScore(
            subject_agent_id='agent-a', skill_id='', window=window,
            reliability=0.9, integrity=0.9, timeliness=0.9, composite=0.9,
            volume=42, value_usd_micros=0, updated_at=future,
        ))
    session.commit()
    store_event(session, make_event())

    RecomputeScheduler(session).recompute_key('agent-a', None)
    session.expire_all()

    row = TrustScore.get_for_key(session, 'agent-a', None, '30d')
    assert row.volume == 42
    assert row.composite == 0.9


def test_recompute_all_resets_scores_without_events(session, make_event):
    session.add(TrustScore(
        subject_agent_id='ghost', skill_id='', window='30d',
        reliability=1.0, integrity=1.0, timeliness=1.0, composite=1.0,
        volume=9, value_usd_micros=0, updated_at=utcnow() - timedelta(days=1),
    ))
    session.commit()
    store_event(session, make_event())

    result = RecomputeScheduler(session).recompute_all()
    session.expire_all()

    assert result['processed'] == 2
    assert ('ghost', None) in result['keys']
    ghost = TrustScore.get_for_key(session, 'ghost', None, '30d')
    assert ghost.volume == 0
    assert ghost.composite == 0.625
    assert TrustScore.get_for_key(session, 'agent-a', None, 'all').volume == 1
