# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics: single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""

from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "roster_requests_total",
    "Total HTTP requests to the roster service",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "roster_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "roster_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Business Metrics (updated by service layer only) ──
SCHEDULES_CREATED = Counter(
    "roster_schedules_created_total",
    "Total schedules created",
)
ROSTER_REGENERATIONS = Counter(
    "roster_participant_regenerations_total",
    "Total participant roster regenerations",
    ["reason"],
)
SWAP_REQUESTS_CREATED = Counter(
    "roster_swap_requests_created_total",
    "Total swap requests created",
)
SWAP_REQUESTS_REFUSED = Counter(
    "roster_swap_requests_refused_total",
    "Swap proposals refused by eligibility checks",
    ["reason"],
)
SWAP_RESPONSES = Counter(
    "roster_swap_responses_total",
    "Swap requests resolved, by response",
    ["response"],
)
SWAP_FAILURES = Counter(
    "roster_swap_failures_total",
    "Swap acceptances that failed mid-protocol",
    ["stage"],
)
SWAP_COMPENSATIONS = Counter(
    "roster_swap_compensations_total",
    "Compensating rollbacks attempted after a partial swap",
    ["outcome"],
)
SWAPS_EXPIRED = Counter(
    "roster_swap_requests_expired_total",
    "Pending swap requests expired because a schedule disappeared",
)
SWAPS_RECONCILIATION_REQUIRED = Gauge(
    "roster_swap_reconciliation_required",
    "Swap requests flagged for manual reconciliation",
)
NOTIFICATIONS_SENT = Counter(
    "roster_notifications_sent_total",
    "Notification dispatch attempts",
    ["event", "outcome"],
)
