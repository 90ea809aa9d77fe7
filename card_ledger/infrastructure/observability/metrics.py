"""Prometheus metrics for obligation creation, invoice ledger activity and summary refresh"""

from prometheus_client import Counter, Histogram

# Obligation metrics
obligation_group_counter = Counter(
    "card_ledger_obligation_groups_total",
    "Purchases recorded",
    ["finance_type"],  # upfront | installment | subscription
)

installment_bucket_counter = Counter(
    "card_ledger_installment_bucket",
    "Purchases by installment count bucket",
    ["bucket"],  # 1, 2-6, 7-12, 13+
)

# Ledger metrics
ledger_adjustment_counter = Counter(
    "card_ledger_invoice_adjustments_total",
    "Invoice total increments and decrements",
    ["direction"],  # add | remove
)

ledger_conflict_counter = Counter(
    "card_ledger_invoice_conflicts_total",
    "Invoice find-or-create attempts that had to be retried",
)

# Summary refresh metrics
summary_refresh_latency_histogram = Histogram(
    "card_ledger_summary_refresh_seconds",
    "Invoice summary recomputation time",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

summary_refresh_failure_counter = Counter(
    "card_ledger_summary_refresh_failures_total",
    "Invoice summary refreshes abandoned after retries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_obligation_group(finance_type: str, installments: int) -> None:
    """Record purchase metrics for monitoring installment usage"""
    obligation_group_counter.labels(finance_type=finance_type).inc()

    if installments == 1:
        bucket = "1"
    elif installments <= 6:
        bucket = "2-6"
    elif installments <= 12:
        bucket = "7-12"
    else:
        bucket = "13+"

    installment_bucket_counter.labels(bucket=bucket).inc()
