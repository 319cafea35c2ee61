"""Prometheus metrics for upgrade orchestration."""

from prometheus_client import Counter, Gauge, Histogram

UPGRADE_PLANS = Counter(
    "upshift_upgrade_plans_total",
    "Upgrade plan executions by terminal outcome",
    labelnames=["outcome"],
)

UPGRADE_RUNNING = Gauge(
    "upshift_upgrade_running",
    "Number of upgrade plans currently running",
)

STEP_LATENCY = Histogram(
    "upshift_upgrade_step_latency_seconds",
    "Wall time of a single step's execute and validate calls",
    labelnames=["step_id"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 15.0, 60.0, 300.0, 900.0, 3600.0),
)

ROLLBACK_STEPS = Counter(
    "upshift_upgrade_rollback_steps_total",
    "Rollback attempts per step by outcome",
    labelnames=["outcome"],
)

GUARD_REJECTIONS = Counter(
    "upshift_guard_rejections_total",
    "Requests rejected because an upgrade was running",
)
