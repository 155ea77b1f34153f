# -*- coding: utf-8 -*-
"""
Tests for the ranking engine: eligibility, scopes, ordering and leaderboard.
"""
import pytest

from trustgraph.models.trust import TrustedSource
from trustgraph.services.badges import BadgeService
from trustgraph.services.errors import InvalidScopeError, InvalidWindowError
from trustgraph.services.ingest import EventIngestService
from trustgraph.services.ranking import RankingEngine


def seed(session, make_event, subject, count, sources=('taskmint', 'wakenet'), **overrides):
    """Ingest `count` events for a subject, cycling through sources."""
    events = [
        make_event(subject=subject, source=sources[i % len(sources)], **overrides)
        for i in range(count)
    ]
    EventIngestService(session).ingest_batch(events)


def test_default_ranking_config(session):
    config = RankingEngine(session).get_ranking_config('30d')

    assert config == {'min_events': 5, 'min_unique_sources': 2}


def test_set_ranking_config_upserts(session):
    engine = RankingEngine(session)
    engine.set_ranking_config('7d', 3, 1)
    engine.set_ranking_config('7d', 2, 1)

    assert engine.get_ranking_config('7d') == {'min_events': 2, 'min_unique_sources': 1}
    assert engine.get_ranking_config('30d')['min_events'] == 5


def test_low_volume_never_ranks(session, make_event):
    seed(session, make_event, 'agent-a', 4)

    assert RankingEngine(session).get_rank('agent-a', '30d') is None
    assert RankingEngine(session).get_leaderboard('30d') == []


def test_distinct_sources_flip_eligibility(session, make_event):
    seed(session, make_event, 'agent-a', 5, sources=('taskmint',))
    engine = RankingEngine(session)
    assert engine.get_rank('agent-a', '30d') is None

    seed(session, make_event, 'agent-a', 1, sources=('wakenet',))

    assert engine.get_rank('agent-a', '30d') == {'rank': 1, 'total': 1}


def test_ties_break_by_agent_id(session, make_event):
    seed(session, make_event, 'agent-b', 5)
    seed(session, make_event, 'agent-a', 5)

    engine = RankingEngine(session)
    assert engine.get_rank('agent-a', '30d') == {'rank': 1, 'total': 2}
    assert engine.get_rank('agent-b', '30d') == {'rank': 2, 'total': 2}


def test_higher_composite_ranks_first(session, make_event):
    seed(session, make_event, 'agent-a', 5, event_type='task_failed', outcome='failure')
    seed(session, make_event, 'agent-z', 5)

    rows = RankingEngine(session).get_leaderboard('30d')

    assert [r['agent_id'] for r in rows] == ['agent-z', 'agent-a']
    assert rows[0]['composite'] > rows[1]['composite']
    assert rows[0]['rank'] == 1
    assert rows[0]['rank_change'] is None


def test_verified_scope_requires_verified_source(session, make_event):
    session.add(TrustedSource(source='taskmint', is_verified=True))
    session.add(TrustedSource(source='wakenet', is_verified=False))
    session.commit()

    seed(session, make_event, 'agent-a', 5)
    seed(session, make_event, 'agent-b', 5, sources=('wakenet', 'zapier'))

    engine = RankingEngine(session)
    assert engine.get_rank('agent-b', '30d', scope='all') is not None
    assert engine.get_rank('agent-b', '30d', scope='verified') is None
    assert engine.get_rank('agent-a', '30d', scope='verified') == {'rank': 1, 'total': 1}


def test_leaderboard_matches_get_rank(session, make_event):
    for subject in ('agent-a', 'agent-b', 'agent-c'):
        seed(session, make_event, subject, 5)
    seed(session, make_event, 'agent-b', 1, event_type='task_failed', outcome='failure')

    engine = RankingEngine(session)
    rows = engine.get_leaderboard('30d')

    assert len(rows) == 3
    for row in rows:
        assert engine.get_rank(row['agent_id'], '30d') == {'rank': row['rank'], 'total': 3}


def test_leaderboard_paging(session, make_event):
    for subject in ('agent-a', 'agent-b', 'agent-c'):
        seed(session, make_event, subject, 5)

    page = RankingEngine(session).get_leaderboard('30d', limit=1, offset=1)

    assert len(page) == 1
    assert page[0]['rank'] == 2
    assert page[0]['agent_id'] == 'agent-b'


def test_skill_leaderboard_uses_skill_scores(session, make_event):
    seed(session, make_event, 'agent-a', 5, skill_id='search')
    seed(session, make_event, 'agent-b', 5)

    rows = RankingEngine(session).get_leaderboard('30d', skill_id='search')

    assert [r['agent_id'] for r in rows] == ['agent-a']


def test_leaderboard_attaches_cached_badges(session, make_event):
    seed(session, make_event, 'agent-a', 5)
    BadgeService(session).cache_badges('agent-a', '30d')

    rows = RankingEngine(session).get_leaderboard('30d')

    assert 'clean_history' in rows[0]['badges']


def test_invalid_scope_and_window(session):
    engine = RankingEngine(session)

    with pytest.raises(InvalidScopeError):
        engine.get_leaderboard('30d', scope='friends')
    with pytest.raises(InvalidWindowError):
        engine.get_rank('agent-a', '90d')
