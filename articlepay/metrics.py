"""Prometheus metrics exposed on /metrics."""

from prometheus_client import CollectorRegistry, Counter

registry = CollectorRegistry()

request_counter = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=registry,
)
purchase_verifications = Counter(
    "purchase_verifications_total",
    "verify-purchase outcomes",
    ["outcome"],
    registry=registry,
)
content_access = Counter(
    "content_access_total",
    "Access gate decisions",
    ["channel", "outcome"],
    registry=registry,
)
