# -*- coding: utf-8 -*-
"""
Tests for the badge overlay.
"""
from trustgraph.models.badges import AgentBadge, BadgeDefinition
from trustgraph.models.trust import TrustScore, TrustedSource
from trustgraph.services.badges import BadgeService
from trustgraph.services.ingest import EventIngestService
from trustgraph.services.ranking import RankingEngine


def ingest(session, events):
    EventIngestService(session).ingest_batch(events)


def slugs(session, agent_id, window='30d', skill_id=None):
    return [b['slug'] for b in BadgeService(session).compute_badges(agent_id, window, skill_id)]


def test_no_score_row_means_no_badges(session):
    assert BadgeService(session).compute_badges('nobody', '30d') == []


def test_fast_responder_and_clean_history(session, make_event):
    ingest(session, [
        make_event(event_type='wakeup_received', source='wakenet'),
        make_event(event_type='wakeup_received', source='wakenet'),
        make_event(event_type='wakeup_received', source='taskmint'),
    ])

    earned = slugs(session, 'agent-a')

    assert 'fast_responder' in earned
    assert 'clean_history' in earned
    assert 'verified_executor' not in earned


def test_fast_responder_needs_three_events(session, make_event):
    ingest(session, [
        make_event(event_type='wakeup_received'),
        make_event(event_type='wakeup_received'),
    ])

    assert 'fast_responder' not in slugs(session, 'agent-a')


def test_dispute_removes_clean_history(session, make_event):
    ingest(session, [
        make_event(),
        make_event(),
        make_event(event_type='task_disputed', outcome='failure', severity=1),
    ])

    assert TrustScore.get_for_key(session, 'agent-a', None, '30d').integrity < 1.0
    assert 'clean_history' not in slugs(session, 'agent-a')


def test_verified_executor_requires_every_event_verified(session, make_event):
    session.add(TrustedSource(source='taskmint', is_verified=True))
    session.commit()

    ingest(session, [make_event(), make_event()])
    assert 'verified_executor' in slugs(session, 'agent-a')

    ingest(session, [make_event(source='unknown-bot')])
    assert 'verified_executor' not in slugs(session, 'agent-a')


def test_agent_level_verified_executor_counts_skill_events(session, make_event):
    session.add(TrustedSource(source='taskmint', is_verified=True))
    session.commit()

    ingest(session, [make_event(), make_event(skill_id='search', source='shady')])

    assert 'verified_executor' not in slugs(session, 'agent-a')


def test_agent_level_clean_history_counts_skill_disputes(session, make_event):
    ingest(session, [
        make_event(),
        make_event(skill_id='search', event_type='task_disputed', outcome='failure', severity=1),
    ])

    assert TrustScore.get_for_key(session, 'agent-a', None, '30d').integrity == 1.0
    assert 'clean_history' not in slugs(session, 'agent-a')


def test_skill_badges_ignore_other_skills(session, make_event):
    ingest(session, [
        make_event(skill_id='search'),
        make_event(skill_id='code-review', event_type='task_disputed', outcome='failure', severity=1),
    ])

    assert 'clean_history' in slugs(session, 'agent-a', skill_id='search')


def test_only_tightest_percentile_badge(session, make_event):
    RankingEngine(session).set_ranking_config('30d', 1, 1)
    ingest(session, [make_event(subject='agent-0')])
    ingest(session, [
        make_event(subject=f'agent-{i}', event_type='task_failed', outcome='failure')
        for i in range(1, 10)
    ])

    assert RankingEngine(session).get_rank('agent-0', '30d') == {'rank': 1, 'total': 10}
    earned = slugs(session, 'agent-0')
    assert 'top_10' in earned
    assert 'top_5' not in earned
    assert 'top_1' not in earned
    assert not any(s.startswith('top_') for s in slugs(session, 'agent-5'))


def test_badge_names_come_from_definitions(session, make_event):
    ingest(session, [make_event()])
    definition = session.query(BadgeDefinition).filter_by(slug='clean_history').one()
    definition.name = 'Spotless'
    session.commit()

    badges = BadgeService(session).compute_badges('agent-a', '30d')

    assert {'slug': 'clean_history', 'name': 'Spotless'} in badges


def test_compute_badges_does_not_touch_scores(session, make_event):
    ingest(session, [make_event()])
    before = TrustScore.get_for_key(session, 'agent-a', None, '30d').to_dict()

    BadgeService(session).compute_badges('agent-a', '30d')
    session.expire_all()

    assert TrustScore.get_for_key(session, 'agent-a', None, '30d').to_dict() == before


def test_cache_badges_replaces_previous_set(session, make_event):
    session.add(AgentBadge(subject_agent_id='agent-a', window='30d', skill_id='', badge_slug='top_1'))
    session.commit()
    ingest(session, [make_event()])

    cached = BadgeService(session).cache_badges('agent-a', '30d')

    stored = sorted(
        b.badge_slug for b in session.query(AgentBadge).filter_by(subject_agent_id='agent-a').all()
    )
    assert stored == sorted(cached)
    assert 'top_1' not in stored
