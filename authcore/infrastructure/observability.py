# SPDX-License-Identifier: Apache-2.0
# Copyright 2025 Vova Orig

from __future__ import annotations

from flask import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

REQUEST_LATENCY = Histogram(
    "authcore_request_latency_seconds",
    "Request latency",
    labelnames=("endpoint",),
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)
REQUEST_COUNTER = Counter(
    "authcore_requests_total",
    "Number of processed requests",
    labelnames=("endpoint", "status"),
)
AUTH_EVENTS = Counter(
    "authcore_auth_events_total",
    "Registration and login outcomes",
    labelnames=("operation", "outcome"),
)


def observe_request(endpoint: str, status: int, duration: float) -> None:
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(duration)
    REQUEST_COUNTER.labels(endpoint=endpoint, status=str(status)).inc()


def record_auth_event(operation: str, outcome: str) -> None:
    AUTH_EVENTS.labels(operation=operation, outcome=outcome).inc()


def metrics_view() -> Response:
    return Response(generate_latest(), content_type=CONTENT_TYPE_LATEST)


__all__ = [
    "AUTH_EVENTS",
    "REQUEST_COUNTER",
    "REQUEST_LATENCY",
    "metrics_view",
    "observe_request",
    "record_auth_event",
]
