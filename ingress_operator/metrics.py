"""Prometheus metrics for the reconciliation loop (served on the status API /metrics)."""

from prometheus_client import Counter, Histogram

RECONCILE_TOTAL = Counter(
    "ingress_operator_reconcile_total",
    "Reconciliation passes by result",
    ["result"],
)
RECONCILE_DURATION = Histogram(
    "ingress_operator_reconcile_duration_seconds",
    "Wall-clock duration of a reconciliation pass",
)
DOMAIN_CONFLICTS = Counter(
    "ingress_operator_domain_conflicts_total",
    "Refusals of a domain already published by a sibling, counted once per refusal",
)
OBJECTS_CREATED = Counter(
    "ingress_operator_objects_created_total",
    "Dependent and scaffolding objects created",
    ["kind"],
)
