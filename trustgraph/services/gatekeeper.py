# -*- coding: utf-8 -*-
"""
Dispatch gate: check an agent's reliability before a job is dispatched to it.
"""
from trustgraph.infra.log import get_logger

logger = get_logger('trustgraph.gate')

DISPATCH_RELIABILITY_THRESHOLD = 0.5


def check_dispatch_gate(reader, agent_id: str, window: str = '30d') -> dict:
    """
    Decide whether a job may be dispatched to an agent.

    Refuses when the agent-level reliability for the window is below
    DISPATCH_RELIABILITY_THRESHOLD; unscored agents get the neutral
    reliability and pass. `reader` is anything with get_score().
    """
    result = reader.get_score(agent_id, window=window)
    scores = result['scores']
    reliability = scores['reliability']

    if reliability < DISPATCH_RELIABILITY_THRESHOLD:
        allowed = False
        reason = (
            f"Agent reliability {reliability} is below dispatch threshold "
            f"{DISPATCH_RELIABILITY_THRESHOLD}. Refusing to dispatch."
        )
    else:
        allowed = True
        reason = "Agent meets minimum reliability for dispatch."

    logger.info(
        "Dispatch gate checked",
        agent_id=agent_id,
        window=window,
        allowed=allowed,
        reliability=reliability,
    )
    return {
        'allowed': allowed,
        'reason': reason,
        'threshold': DISPATCH_RELIABILITY_THRESHOLD,
        'scores': scores,
        'updated_at': result['updated_at'],
        'window': window,
    }
