# -*- coding: utf-8 -*-
"""
Service for managing Prometheus metrics.

Provides a per-app registry with HTTP request metrics plus ingest and
recompute counters, and the /metrics exposition endpoint.
"""

import os
import time
from typing import Optional
from flask import Flask, request, g, current_app, has_app_context
from prometheus_client import CollectorRegistry, Counter, Histogram
from prometheus_client.exposition import generate_latest


def init_metrics(app: Flask) -> None:
    """Initialize metrics service and endpoints."""
    service = MetricsService()
    app.extensions['metrics'] = service

    if service.enabled:
        @app.before_request
        def before_request():
            g.start_time = time.time()

        @app.after_request
        def after_request(response):
            duration = time.time() - getattr(g, 'start_time', time.time())
            service.record_http_request(
                route=route_label(),
                method=request.method,
                status_code=response.status_code,
                duration_seconds=duration
            )
            return response

        @app.route("/metrics")
        def metrics():
            return service.get_metrics(), 200, {
                'Content-Type': 'text/plain; version=0.0.4; charset=utf-8'}


UNMATCHED_ROUTE = '<unmatched>'


def route_label() -> str:
    """
    Route template for the current request, e.g. /trust/agents/<agent_id>.

    Path values never become label values; requests that match no rule share
    one label.
    """
    rule = request.url_rule
    return rule.rule if rule is not None else UNMATCHED_ROUTE


def get_metrics_service() -> Optional['MetricsService']:
    """Get the metrics service instance from the current app context."""
    if has_app_context():
        return current_app.extensions.get('metrics')
    return None


class MetricsService:
    """Service for managing Prometheus metrics."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize the metrics service."""
        self.enabled = os.environ.get(
            "TRUSTGRAPH_METRICS_ENABLED",
            "true").lower() == "true"
        # One registry per app so repeated create_app() calls do not collide
        self.registry = registry if registry is not None else CollectorRegistry()

        if self.enabled:
            self.http_requests_total = Counter(
                "trustgraph_http_requests_total",
                "Total number of HTTP requests.",
                ["route", "method", "status"],
                registry=self.registry
            )
            self.http_request_duration_seconds = Histogram(
                "trustgraph_http_request_duration_seconds",
                "Duration of HTTP requests in seconds.",
                ["route", "method"],
                registry=self.registry
            )
            self.events_ingested_total = Counter(
                "trustgraph_events_ingested_total",
                "Trust events submitted for ingest, by result.",
                ["result"],
                registry=self.registry
            )
            self.score_recomputes_total = Counter(
                "trustgraph_score_recomputes_total",
                "Agent/skill keys recomputed, by trigger.",
                ["trigger"],
                registry=self.registry
            )
            self.recompute_duration_seconds = Histogram(
                "trustgraph_recompute_duration_seconds",
                "Duration of one agent/skill recompute (all windows).",
                registry=self.registry
            )

    def record_http_request(
            self,
            route: str,
            method: str,
            status_code: int,
            duration_seconds: float):
        """Record an HTTP request."""
        if self.enabled:
            self.http_requests_total.labels(
                route=route,
                method=method,
                status=status_code).inc()
            self.http_request_duration_seconds.labels(
                route=route, method=method).observe(duration_seconds)

    def record_ingest(self, inserted: int, skipped: int):
        """Record ingest results."""
        if self.enabled:
            if inserted:
                self.events_ingested_total.labels(result='inserted').inc(inserted)
            if skipped:
                self.events_ingested_total.labels(result='skipped').inc(skipped)

    def record_recompute(self, trigger: str, duration_seconds: float):
        """Record one key recompute."""
        if self.enabled:
            self.score_recomputes_total.labels(trigger=trigger).inc()
            self.recompute_duration_seconds.observe(duration_seconds)

    def get_metrics(self) -> str:
        """Get metrics data as text."""
        if self.enabled:
            return generate_latest(self.registry).decode('utf-8')
        return ""
