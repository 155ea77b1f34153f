"""TrustGraph schema: events, scores, ranking config, sources, agents, badges

Revision ID: 0001_trustgraph
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001_trustgraph'
down_revision = None
branch_labels = None
depends_on = None

EVENT_TYPES = (
    'task_completed', 'task_failed', 'task_disputed', 'task_reversed',
    'task_timeout', 'execution_proved', 'execution_invalid', 'wakeup_received',
    'wakeup_missed', 'reaction_late', 'payment_settled', 'payment_reversed',
)
WINDOWS = ('7d', '30d', '180d', 'all')


def _in(values):
    return ", ".join(f"'{v}'" for v in values)


def upgrade():
    # Agent registry
    op.create_table(
        'operators',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('display_name', sa.String(256), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        'agents',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('display_name', sa.String(256), nullable=True),
        sa.Column('public_key', sa.Text, nullable=True),
        sa.Column('operator_id', sa.String(128), sa.ForeignKey('operators.id'), nullable=True),
        sa.Column('metadata', sa.JSON, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('last_seen_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_agents_operator_id', 'agents', ['operator_id'])

    # Append-only event log
    op.create_table(
        'trust_events',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('subject_agent_id', sa.String(128), nullable=False),
        sa.Column('actor_agent_id', sa.String(128), nullable=True),
        sa.Column('skill_id', sa.String(128), nullable=True),
        sa.Column('source', sa.String(64), nullable=False),
        sa.Column('event_type', sa.String(32), nullable=False),
        sa.Column('outcome', sa.String(16), nullable=False),
        sa.Column('severity', sa.Integer, nullable=False, server_default='50'),
        sa.Column('value_usd_micros', sa.BigInteger, nullable=True),
        sa.Column('occurred_at', sa.DateTime, nullable=False),
        sa.Column('observed_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('external_ref_type', sa.String(64), nullable=True),
        sa.Column('external_ref_id', sa.String(256), nullable=True),
        sa.Column('evidence', sa.JSON, nullable=True),
        sa.CheckConstraint(f"event_type IN ({_in(EVENT_TYPES)})", name='ck_trust_event_type'),
        sa.CheckConstraint("outcome IN ('success', 'failure', 'neutral')", name='ck_trust_event_outcome'),
        sa.CheckConstraint('severity >= 1 AND severity <= 100', name='ck_trust_event_severity_range'),
        sa.CheckConstraint('value_usd_micros IS NULL OR value_usd_micros >= 0', name='ck_trust_event_value'),
        sa.UniqueConstraint('external_ref_type', 'external_ref_id', name='uq_trust_events_external_ref'),
    )
    op.create_index('ix_trust_events_subject_occurred', 'trust_events', ['subject_agent_id', 'occurred_at'])
    op.create_index('ix_trust_events_subject_skill', 'trust_events', ['subject_agent_id', 'skill_id'])
    op.create_index('ix_trust_events_source', 'trust_events', ['source'])

    # Derived scores; skill_id '' = agent-level
    op.create_table(
        'trust_scores',
        sa.Column('subject_agent_id', sa.String(128), primary_key=True),
        sa.Column('skill_id', sa.String(128), primary_key=True, server_default=''),
        sa.Column('score_window', sa.String(8), primary_key=True),
        sa.Column('reliability', sa.Float, nullable=False, server_default='0.5'),
        sa.Column('integrity', sa.Float, nullable=False, server_default='1'),
        sa.Column('timeliness', sa.Float, nullable=False, server_default='0'),
        sa.Column('composite', sa.Float, nullable=False, server_default='0.5'),
        sa.Column('volume', sa.Integer, nullable=False, server_default='0'),
        sa.Column('value_usd_micros', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(f"score_window IN ({_in(WINDOWS)})", name='ck_trust_score_window'),
        sa.CheckConstraint(
            'reliability >= 0 AND reliability <= 1 AND integrity >= 0 AND integrity <= 1 '
            'AND timeliness >= 0 AND timeliness <= 1 AND composite >= 0 AND composite <= 1',
            name='ck_trust_score_range'),
    )
    op.create_index(
        'ix_trust_scores_window_composite', 'trust_scores', ['score_window', 'skill_id', 'composite'])

    op.create_table(
        'ranking_config',
        sa.Column('score_window', sa.String(8), primary_key=True),
        sa.Column('min_events', sa.Integer, nullable=False, server_default='5'),
        sa.Column('min_unique_sources', sa.Integer, nullable=False, server_default='2'),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(f"score_window IN ({_in(WINDOWS)})", name='ck_ranking_config_window'),
        sa.CheckConstraint('min_events >= 0 AND min_unique_sources >= 0', name='ck_ranking_config_minimums'),
    )

    op.create_table(
        'trusted_sources',
        sa.Column('source', sa.String(64), primary_key=True),
        sa.Column('is_verified', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('note', sa.String(256), nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    # Badge catalogue and cache
    op.create_table(
        'badge_definitions',
        sa.Column('slug', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('sort_order', sa.Integer, nullable=False, server_default='0'),
    )
    op.create_table(
        'agent_badges',
        sa.Column('subject_agent_id', sa.String(128), primary_key=True),
        sa.Column('score_window', sa.String(8), primary_key=True),
        sa.Column('skill_id', sa.String(128), primary_key=True, server_default=''),
        sa.Column('badge_slug', sa.String(64), primary_key=True),
        sa.Column('awarded_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_agent_badges_window_skill', 'agent_badges', ['score_window', 'skill_id'])


def downgrade():
    op.drop_index('ix_agent_badges_window_skill', table_name='agent_badges')
    op.drop_table('agent_badges')
    op.drop_table('badge_definitions')
    op.drop_table('trusted_sources')
    op.drop_table('ranking_config')
    op.drop_index('ix_trust_scores_window_composite', table_name='trust_scores')
    op.drop_table('trust_scores')
    op.drop_index('ix_trust_events_source', table_name='trust_events')
    op.drop_index('ix_trust_events_subject_skill', table_name='trust_events')
    op.drop_index('ix_trust_events_subject_occurred', table_name='trust_events')
    op.drop_table('trust_events')
    op.drop_index('ix_agents_operator_id', table_name='agents')
    op.drop_table('agents')
    op.drop_table('operators')
