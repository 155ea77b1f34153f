# -*- coding: utf-8 -*-
"""
Unit tests for the trust score function.
"""
import pytest
from types import SimpleNamespace

from trustgraph.services.scoring import compute_scores, event_weights, WEIGHTS, EPS


def ev(event_type, outcome='success', severity=100, value_usd_micros=None):
    return SimpleNamespace(
        event_type=event_type,
        outcome=outcome,
        severity=severity,
        value_usd_micros=value_usd_micros,
    )


def test_weights_sum_to_one():
    assert abs(sum(WEIGHTS.values()) - 1.0) < 0.001
    assert EPS == 1e-9


def test_no_events_gives_neutral_scores():
    result = compute_scores('agent-a', None, '30d', [])

    assert result['reliability'] == 0.5
    assert result['integrity'] == 1.0
    assert result['timeliness'] == 0.0
    assert result['composite'] == 0.625
    assert result['volume'] == 0
    assert result['value_usd_micros'] == 0


def test_success_and_failure_split_reliability():
    result = compute_scores('agent-a', None, '30d', [
        ev('task_completed', 'success'),
        ev('task_failed', 'failure'),
    ])

    assert result['reliability'] == 0.5
    assert result['volume'] == 2


def test_dispute_lowers_integrity_and_composite():
    clean = compute_scores('agent-a', None, '30d', [ev('task_completed')])
    disputed = compute_scores('agent-a', None, '30d', [
        ev('task_completed'),
        ev('task_disputed', 'failure'),
    ])

    assert clean['integrity'] == 1.0
    assert disputed['integrity'] < clean['integrity']
    assert disputed['composite'] < clean['composite']


def test_on_time_and_late_split_timeliness():
    result = compute_scores('agent-a', None, '7d', [
        ev('wakeup_received', 'success'),
        ev('reaction_late', 'neutral'),
    ])

    assert result['timeliness'] == 0.5


def test_missed_wakeup_counts_against_timeliness():
    result = compute_scores('agent-a', None, '7d', [
        ev('wakeup_received', 'success'),
        ev('wakeup_missed', 'failure'),
        ev('wakeup_missed', 'failure'),
        ev('wakeup_missed', 'failure'),
    ])

    assert result['timeliness'] == 0.25


def test_composite_is_weighted_sum_of_components():
    result = compute_scores('agent-a', 'skill-x', '30d', [
        ev('task_completed', 'success', severity=80),
        ev('task_failed', 'failure', severity=40),
        ev('wakeup_received', 'success', severity=60),
        ev('reaction_late', 'neutral', severity=30),
        ev('payment_reversed', 'failure', severity=20),
    ])

    expected = (
        0.45 * result['integrity'] +
        0.35 * result['reliability'] +
        0.20 * result['timeliness']
    )
    assert result['composite'] == pytest.approx(expected, abs=0.002)
    for key in ('reliability', 'integrity', 'timeliness', 'composite'):
        assert 0 <= result[key] <= 1
        assert result[key] == round(result[key], 3)


def test_result_does_not_depend_on_event_order():
    events = [
        ev('task_completed', 'success', severity=70),
        ev('execution_proved', 'success', severity=90),
        ev('task_timeout', 'failure', severity=30),
        ev('wakeup_received', 'success', severity=50),
        ev('payment_settled', 'success', severity=100, value_usd_micros=2_500_000),
    ]

    forward = compute_scores('agent-a', None, 'all', events)
    backward = compute_scores('agent-a', None, 'all', list(reversed(events)))

    assert forward == backward


def test_compute_scores_is_pure():
    events = [ev('task_completed'), ev('task_failed', 'failure')]
    first = compute_scores('agent-a', None, '30d', events)
    second = compute_scores('agent-a', None, '30d', events)

    assert first == second
    assert len(events) == 2
    assert events[0].event_type == 'task_completed'


def test_outcome_is_case_insensitive():
    upper = compute_scores('agent-a', None, '30d', [ev('task_completed', 'SUCCESS')])
    lower = compute_scores('agent-a', None, '30d', [ev('task_completed', 'success')])

    assert upper == lower
    assert upper['reliability'] == 1.0


def test_severity_scales_bucket_contribution():
    weights = event_weights(ev('task_completed', 'success', severity=40))

    assert weights['success'] == pytest.approx(0.4)
    assert weights['failure'] == 0.0


def test_proofs_and_payments_count_half_success():
    assert event_weights(ev('execution_proved'))['success'] == pytest.approx(0.5)
    assert event_weights(ev('payment_settled'))['success'] == pytest.approx(0.5)
    assert event_weights(ev('execution_proved', 'failure'))['success'] == 0.0


def test_integrity_negative_types_ignore_outcome():
    for event_type in ('task_disputed', 'task_reversed', 'execution_invalid', 'payment_reversed'):
        assert event_weights(ev(event_type, 'neutral'))['integrity_bad'] == pytest.approx(1.0)


def test_only_integrity_events_give_zero_reliability():
    result = compute_scores('agent-a', None, '30d', [ev('task_reversed', 'failure')])

    assert result['reliability'] == 0.0
    assert result['integrity'] == 0.0


def test_value_sums_non_null_amounts():
    result = compute_scores('agent-a', None, '30d', [
        ev('payment_settled', value_usd_micros=1_000_000),
        ev('payment_settled', value_usd_micros=None),
        ev('payment_settled', value_usd_micros=250_000),
    ])

    assert result['value_usd_micros'] == 1_250_000
    assert result['volume'] == 3
