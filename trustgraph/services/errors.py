# -*- coding: utf-8 -*-
"""
Trust service exceptions.

Routes map these to HTTP responses in trustgraph.middleware.errors.
"""
from trustgraph.models.trust import SCORE_WINDOWS

LEADERBOARD_SCOPES = ('all', 'verified')


class TrustGraphError(Exception):
    """Base class for errors raised by the trust services."""
    code = 'trust_error'
    status_code = 500

    def to_dict(self):
        return {'error': self.code, 'message': str(self)}


class InvalidWindowError(TrustGraphError):
    code = 'invalid_window'
    status_code = 400

    def __init__(self, window):
        super().__init__(f"window must be one of {', '.join(SCORE_WINDOWS)} (got {window!r})")
        self.window = window

    def to_dict(self):
        data = super().to_dict()
        data['allowed'] = list(SCORE_WINDOWS)
        return data


class InvalidScopeError(TrustGraphError):
    code = 'invalid_scope'
    status_code = 400

    def __init__(self, scope):
        super().__init__(f"scope must be one of {', '.join(LEADERBOARD_SCOPES)} (got {scope!r})")
        self.scope = scope

    def to_dict(self):
        data = super().to_dict()
        data['allowed'] = list(LEADERBOARD_SCOPES)
        return data


class DuplicateEventError(TrustGraphError):
    """A single-event ingest hit an existing (external_ref_type, external_ref_id)."""
    code = 'duplicate_event'
    status_code = 409

    def __init__(self, external_ref_type, external_ref_id):
        super().__init__(
            f"Duplicate event (idempotency conflict on {external_ref_type}/{external_ref_id})")
        self.external_ref_type = external_ref_type
        self.external_ref_id = external_ref_id


def check_window(window: str) -> str:
    if window not in SCORE_WINDOWS:
        raise InvalidWindowError(window)
    return window


def check_scope(scope: str) -> str:
    if scope not in LEADERBOARD_SCOPES:
        raise InvalidScopeError(scope)
    return scope
