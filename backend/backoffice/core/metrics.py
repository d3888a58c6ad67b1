from __future__ import annotations

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


http_requests_total = Counter(
    "http_requests_total",
    "Total number of HTTP requests.",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds.",
    ["method", "path"],
)

campaign_status_transitions_total = Counter(
    "campaign_status_transitions_total",
    "Campaign status changes recorded in the audit trail.",
    ["action_type"],
)

approval_requests_total = Counter(
    "approval_requests_total",
    "Approval requests by outcome.",
    ["outcome"],
)


def render_metrics() -> tuple[bytes, str]:
    return generate_latest(), CONTENT_TYPE_LATEST
