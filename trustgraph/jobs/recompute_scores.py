# -*- coding: utf-8 -*-
"""
Score Recompute Job

Runs on a cron (every SCORE_RECOMPUTE_INTERVAL_MINUTES) to recompute stale
agent/skill scores in bounded batches, or everything with --all. Refreshes
the leaderboard badge cache for every scored key, including when the sweep
is disabled and scores only change on ingest. Percentile badges depend on
every other agent's rank, so the whole cache is rebuilt each run.

    python -m trustgraph.jobs.recompute_scores [--batch-size N] [--all]
"""
import argparse
from typing import Optional

from flask import current_app

from trustgraph.infra.db import get_db
from trustgraph.infra.log import get_logger
from trustgraph.models.trust import TrustScore
from trustgraph.services.badges import BadgeService
from trustgraph.services.recompute import RecomputeScheduler

logger = get_logger('trustgraph.jobs')


def _refresh_badges(db) -> int:
    badges = BadgeService(db)
    keys = db.query(TrustScore.subject_agent_id, TrustScore.skill_id, TrustScore.window).order_by(
        TrustScore.subject_agent_id, TrustScore.skill_id, TrustScore.window
    ).all()
    for subject_agent_id, skill_id, window in keys:
        badges.cache_badges(subject_agent_id, window, skill_id or None)
    return len(keys)


def run_score_recompute(batch_size: Optional[int] = None, full: bool = False) -> dict:
    """
    Run one recompute pass inside the current app context.

    Args:
        batch_size: stale keys per run; defaults to SCORE_RECOMPUTE_BATCH_SIZE
        full: recompute every key instead of only stale ones

    Returns:
        dict: processed count, message and number of badge sets refreshed
    """
    db = next(get_db())
    scheduler = RecomputeScheduler(db)

    if full:
        result = scheduler.recompute_all()
    else:
        if batch_size is None:
            batch_size = current_app.config['SCORE_RECOMPUTE_BATCH_SIZE']
        result = scheduler.recompute_stale(batch_size)

    badges_refreshed = 0
    if current_app.config.get('TRUSTGRAPH_CACHE_BADGES'):
        badges_refreshed = _refresh_badges(db)

    summary = {
        'processed': result['processed'],
        'message': result['message'],
        'badges_refreshed': badges_refreshed,
    }
    logger.info(
        "Score recompute job completed",
        full=full,
        processed=summary["processed"],
        badges_refreshed=badges_refreshed,
    )
    return summary


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Recompute stale TrustGraph scores.")
    parser.add_argument('--batch-size', type=int, default=None,
                        help="max agent/skill keys to recompute (default: SCORE_RECOMPUTE_BATCH_SIZE)")
    parser.add_argument('--all', dest='full', action='store_true',
                        help="recompute every agent/skill key")
    args = parser.parse_args(argv)

    from trustgraph.factory import create_app

    app = create_app()
    with app.app_context():
        result = run_score_recompute(batch_size=args.batch_size, full=args.full)
    print(result['message'])
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
