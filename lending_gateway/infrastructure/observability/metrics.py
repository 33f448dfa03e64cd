"""Prometheus metrics for calculations, extensions, credit limits and webhook performance"""

from prometheus_client import Counter, Histogram

# Calculation metrics
calculation_counter = Counter(
    "lending_calculation_total",
    "Loan calculations performed",
    ["method"],  # fixed | salary_date | custom
)

# Extension metrics
extension_request_counter = Counter(
    "lending_extension_requests_total",
    "Extension requests created",
)

extension_decision_counter = Counter(
    "lending_extension_decisions_total",
    "Extension requests approved or rejected",
    ["outcome"],  # approved | rejected
)

extension_failure_counter = Counter(
    "lending_extension_failures_total",
    "Extension requests or approvals refused",
    ["reason"],  # not_eligible | max_extensions | already_pending | invalid_state
)

# Credit limit metrics
credit_limit_review_counter = Counter(
    "lending_credit_limit_reviews_total",
    "Credit limit reviews by ladder tier",
    ["tier", "premium"],
)

# Webhook metrics
webhook_latency_histogram = Histogram(
    "webhook_latency_seconds",
    "Ledger webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "webhook_failures_total",
    "Failed webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_calculation(method: str) -> None:
    calculation_counter.labels(method=method).inc()


def record_extension_decision(approved: bool) -> None:
    outcome = "approved" if approved else "rejected"
    extension_decision_counter.labels(outcome=outcome).inc()


def record_extension_failure(reason: str) -> None:
    extension_failure_counter.labels(reason=reason).inc()


def record_credit_limit_review(percentage_tier, is_premium: bool) -> None:
    """Record which ladder tier a review landed on"""
    credit_limit_review_counter.labels(
        tier=str(percentage_tier),
        premium="true" if is_premium else "false",
    ).inc()
