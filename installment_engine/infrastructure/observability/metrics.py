"""Prometheus metrics for plan creation, payment settlement, and overdue sweeps"""

from prometheus_client import Counter, Histogram

# Plan metrics
plans_created_counter = Counter(
    "installment_plans_created_total",
    "Total installment plans created",
)

plans_completed_counter = Counter(
    "installment_plans_completed_total",
    "Installment plans reaching Completed",
    ["trigger"],  # payment | manual
)

# Payment metrics
payments_recorded_counter = Counter(
    "installment_payments_recorded_total",
    "Payments applied to installments",
    ["outcome"],  # partial | settled
)

# Overdue sweep metrics
overdue_marked_counter = Counter(
    "installment_overdue_marked_total",
    "Installments moved from Pending to Overdue",
)

sweep_runs_counter = Counter(
    "installment_sweep_runs_total",
    "Overdue sweep executions",
    ["outcome"],  # success | failure
)

sweep_duration_histogram = Histogram(
    "installment_sweep_duration_seconds",
    "Overdue sweep duration",
    buckets=[0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_payment(settled: bool, plan_completed: bool) -> None:
    """Record payment outcome; a payment that closes the plan also counts as a completion"""
    payments_recorded_counter.labels(outcome="settled" if settled else "partial").inc()
    if plan_completed:
        plans_completed_counter.labels(trigger="payment").inc()


def record_sweep(installments_marked: int, duration_seconds: float) -> None:
    sweep_runs_counter.labels(outcome="success").inc()
    overdue_marked_counter.inc(installments_marked)
    sweep_duration_histogram.observe(duration_seconds)
