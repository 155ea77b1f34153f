# -*- coding: utf-8 -*-
"""
Tests for the trust read service: scores, profile, operator dashboard, health.
"""
import pytest
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from trustgraph.models.agent import Agent, Operator
from trustgraph.services.errors import InvalidWindowError
from trustgraph.services.ingest import EventIngestService
from trustgraph.services.trust_read import TrustReadService


def test_get_score_neutral_default(session):
    result = TrustReadService(session).get_score('nobody')

    assert result['scores'] == {
        'reliability': 0.5,
        'integrity': 1.0,
        'timeliness': 0.5,
        'composite': 0.5,
        'volume': 0,
    }
    assert result['updated_at']


def test_get_score_reads_persisted_row(session, make_event):
    EventIngestService(session).ingest_one(make_event(event_type='task_failed', outcome='failure'))

    result = TrustReadService(session).get_score('agent-a', window='7d')

    assert result['scores']['reliability'] == 0.0
    assert result['scores']['volume'] == 1


def test_get_score_for_skill(session, make_event):
    EventIngestService(session).ingest_one(make_event(skill_id='search'))
    reader = TrustReadService(session)

    assert reader.get_score('agent-a', 'search')['scores']['volume'] == 1
    assert reader.get_score('agent-a', 'translate')['scores']['volume'] == 0


def test_get_score_rejects_unknown_window(session):
    with pytest.raises(InvalidWindowError):
        TrustReadService(session).get_score('agent-a', window='90d')


def test_profile_unknown_agent(session):
    assert TrustReadService(session).get_profile('nobody') is None


def test_profile_fields(session, make_event):
    EventIngestService(session).ingest_batch([
        make_event(source='taskmint'),
        make_event(source='wakenet'),
    ])

    profile = TrustReadService(session).get_profile('agent-a', '30d')

    assert profile['agent_id'] == 'agent-a'
    assert profile['proof_count'] == 2
    assert profile['composite'] == 0.8
    assert profile['rank_7d'] is None
    assert profile['rank_change_7d'] is None
    assert profile['share_url'] == 'https://trust.example.com/agent/agent-a'
    assert profile['window'] == '30d'
    assert {'slug': 'clean_history', 'name': 'Clean History'} in profile['badges']


def test_profile_share_url_is_escaped(session):
    session.add(Agent(id='team/bot 1'))
    session.commit()

    profile = TrustReadService(session, public_base_url='http://localhost:3040').get_profile('team/bot 1')

    assert profile['share_url'] == 'http://localhost:3040/agent/team%2Fbot%201'
    assert profile['proof_count'] == 0


def test_operator_dashboard(session, make_event):
    session.add(Operator(id='op-1', display_name='Acme'))
    session.add(Agent(id='agent-a', operator_id='op-1'))
    session.add(Agent(id='agent-b', operator_id='op-1'))
    session.commit()
    EventIngestService(session).ingest_batch([
        make_event(subject='agent-a', event_type='task_failed', outcome='failure'),
        make_event(subject='agent-b'),
    ])

    dashboard = TrustReadService(session).get_operator_dashboard('op-1')

    assert dashboard['display_name'] == 'Acme'
    assert [a['agent_id'] for a in dashboard['agents']] == ['agent-a', 'agent-b']
    assert dashboard['best_agent_id'] == 'agent-b'


def test_operator_dashboard_unknown_and_empty(session):
    session.add(Operator(id='op-empty'))
    session.commit()
    reader = TrustReadService(session)

    assert reader.get_operator_dashboard('op-missing') is None
    empty = reader.get_operator_dashboard('op-empty')
    assert empty['agents'] == []
    assert empty['best_agent_id'] is None


def test_health(session):
    reader = TrustReadService(session)
    assert reader.health() == {'ok': True}

    failure = OperationalError("SELECT 1", {}, Exception("connection refused"))
    with patch.object(reader.store, 'ping', side_effect=failure):
        result = reader.health()

    assert result['ok'] is False
    assert 'connection refused' in result['error']
