"""Prometheus metric definitions for the payment intent service."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


intents_created_total = Counter("intents_created_total", "Payment intents created", ["service"])
intent_transitions_total = Counter(
    "intent_transitions_total",
    "Applied intent state transitions",
    ["service", "from_state", "to_state"],
)
intent_transition_noops_total = Counter(
    "intent_transition_noops_total",
    "Transition attempts absorbed by a terminal or identical state",
    ["service", "state"],
)
webhook_events_total = Counter(
    "webhook_events_total",
    "Verified webhook events by type and reconciliation outcome",
    ["service", "event_type", "outcome"],
)
webhook_verification_failures_total = Counter(
    "webhook_verification_failures_total",
    "Webhook deliveries rejected by signature verification",
    ["service"],
)
processor_request_seconds = Histogram(
    "processor_request_seconds",
    "Outbound processor API latency seconds",
    ["service", "operation"],
)
processor_errors_total = Counter(
    "processor_errors_total",
    "Outbound processor API failures",
    ["service", "operation"],
)
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
