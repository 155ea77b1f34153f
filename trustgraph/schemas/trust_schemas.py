# -*- coding: utf-8 -*-
"""
Trust API Schemas.

Marshmallow schemas for event ingest and the query strings of the read routes.
Window and scope values are checked by the services, which report the allowed
values in their error payloads.
"""
from marshmallow import Schema, fields, validate, validates, ValidationError, EXCLUDE

from trustgraph.models.trust import TRUST_EVENT_TYPES, OUTCOMES


class EventCreateSchema(Schema):
    """Schema for a trust event submission."""
    class Meta:
        unknown = EXCLUDE

    subject_agent_id = fields.Str(required=True, validate=validate.Length(min=1, max=128))
    actor_agent_id = fields.Str(allow_none=True, validate=validate.Length(max=128))
    skill_id = fields.Str(allow_none=True, validate=validate.Length(max=128))
    source = fields.Str(required=True, validate=validate.Length(min=1, max=64))
    event_type = fields.Str(required=True, validate=validate.OneOf(TRUST_EVENT_TYPES))
    outcome = fields.Str(required=True)
    severity = fields.Int(load_default=50, strict=True, validate=validate.Range(min=1, max=100))
    value_usd_micros = fields.Int(allow_none=True, strict=True, validate=validate.Range(min=0))
    occurred_at = fields.DateTime(required=True)
    external_ref_type = fields.Str(allow_none=True, validate=validate.Length(max=64))
    external_ref_id = fields.Str(allow_none=True, validate=validate.Length(max=256))
    evidence = fields.Dict(allow_none=True)

    @validates('outcome')
    def validate_outcome(self, value, **kwargs):
        if value.lower() not in OUTCOMES:
            raise ValidationError(f"Must be one of: {', '.join(OUTCOMES)}.")


class EventBatchSchema(Schema):
    """Schema for a batch of trust events."""
    class Meta:
        unknown = EXCLUDE

    events = fields.List(fields.Nested(EventCreateSchema), required=True)


class ScoreQuerySchema(Schema):
    class Meta:
        unknown = EXCLUDE

    window = fields.Str(load_default='30d')


class RankQuerySchema(ScoreQuerySchema):
    skill_id = fields.Str(load_default=None, allow_none=True)
    scope = fields.Str(load_default='all')


class DispatchGateQuerySchema(ScoreQuerySchema):
    agent_id = fields.Str(required=True, validate=validate.Length(min=1))


class LeaderboardQuerySchema(RankQuerySchema):
    """Leaderboard paging; limit above the configured maximum is capped, not rejected."""
    limit = fields.Int(load_default=100, validate=validate.Range(min=1))
    offset = fields.Int(load_default=0, validate=validate.Range(min=0))


class RecomputeRequestSchema(Schema):
    """Stale sweep request; batch_size defaults to SCORE_RECOMPUTE_BATCH_SIZE."""
    class Meta:
        unknown = EXCLUDE

    batch_size = fields.Int(load_default=None, allow_none=True)


class RankingConfigSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    min_events = fields.Int(required=True, validate=validate.Range(min=0))
    min_unique_sources = fields.Int(required=True, validate=validate.Range(min=0))
