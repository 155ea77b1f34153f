# -*- coding: utf-8 -*-
"""
Deterministic trust scoring.

Maps the events of one subject (optionally one skill) inside one window to
four bounded scores:

    composite = 0.45 * integrity + 0.35 * reliability + 0.20 * timeliness

No I/O happens here; the recompute scheduler reads events and persists the
result.
"""
from typing import Dict, Iterable, Optional

EPS = 1e-9

# Composite weights (must sum to 1.0)
WEIGHTS = {
    'integrity': 0.45,
    'reliability': 0.35,
    'timeliness': 0.20,
}

# Score for a subject with no signal for that dimension. Timeliness has no
# prior: it evaluates to 0 until timeliness events exist.
NO_SIGNAL_RELIABILITY = 0.5
NO_SIGNAL_INTEGRITY = 1.0

BUCKETS = ('success', 'failure', 'integrity_bad', 'on_time', 'late', 'missed')


def event_weights(event) -> Dict[str, float]:
    """
    Classify one event into the six weighted buckets.

    Each contribution is scaled by severity / 100. An event may land in more
    than one bucket.
    """
    t = event.event_type
    o = (event.outcome or '').lower()
    s = event.severity / 100
    w = dict.fromkeys(BUCKETS, 0.0)

    # Task / work
    if t == 'task_completed' and o == 'success':
        w['success'] = s
    elif t in ('task_failed', 'task_timeout'):
        w['failure'] = s
    elif t in ('task_disputed', 'task_reversed'):
        w['integrity_bad'] = s

    # Execution proofs
    if t == 'execution_proved' and o == 'success':
        w['success'] += s * 0.5
    elif t == 'execution_invalid':
        w['integrity_bad'] += s

    # Wake-up timeliness
    if t == 'wakeup_received' and o == 'success':
        w['on_time'] = s
    elif t == 'reaction_late':
        w['late'] = s
    elif t == 'wakeup_missed':
        w['missed'] = s

    # Payments
    if t == 'payment_settled' and o == 'success':
        w['success'] += s * 0.5
    elif t == 'payment_reversed':
        w['integrity_bad'] += s

    return w


def compute_scores(subject_agent_id: str, skill_id: Optional[str], window: str,
                   events: Iterable) -> Dict:
    """
    Compute scores for one (subject, skill, window) from its in-window events.

    The caller is responsible for passing exactly the events that qualify
    for the window; subject, skill and window are carried for the record only.

    Returns: dict with reliability, integrity, timeliness, composite (each
    rounded to 3 decimals), volume (raw event count) and value_usd_micros.
    """
    totals = dict.fromkeys(BUCKETS, 0.0)
    volume = 0
    value_usd_micros = 0

    for event in events:
        for bucket, weight in event_weights(event).items():
            totals[bucket] += weight
        volume += 1
        value_usd_micros += event.value_usd_micros or 0

    success = totals['success']
    failure = totals['failure']
    integrity_bad = totals['integrity_bad']
    on_time = totals['on_time']
    late = totals['late']
    missed = totals['missed']

    if success + failure + integrity_bad > 0:
        reliability = success / (success + failure + EPS)
    else:
        reliability = NO_SIGNAL_RELIABILITY

    integrity_total = success + failure + integrity_bad + on_time + late + missed
    if integrity_total > 0:
        integrity = max(0.0, 1 - integrity_bad / (integrity_total + EPS))
    else:
        integrity = NO_SIGNAL_INTEGRITY

    timeliness = on_time / (on_time + late + missed + EPS)

    composite = (
        integrity * WEIGHTS['integrity'] +
        reliability * WEIGHTS['reliability'] +
        timeliness * WEIGHTS['timeliness']
    )

    return {
        'reliability': round(reliability, 3),
        'integrity': round(integrity, 3),
        'timeliness': round(timeliness, 3),
        'composite': round(composite, 3),
        'volume': volume,
        'value_usd_micros': value_usd_micros,
    }
