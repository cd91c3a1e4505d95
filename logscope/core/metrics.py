from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

AGENT_LATENCY_SECONDS = Histogram(
    "logscope_agent_execution_latency_seconds",
    "Latency for each agent execution",
    labelnames=("agent",),
)

AGENT_EVENT_TOTAL = Counter(
    "logscope_agent_event_total",
    "Count of agent lifecycle events (started/completed/failed/skipped)",
    labelnames=("agent", "event"),
)

AGENT_HEALTH_CHECK_TOTAL = Counter(
    "logscope_agent_health_check_total",
    "Agent health probe outcomes",
    labelnames=("agent", "outcome"),
)

TASK_RUNS_TOTAL = Counter(
    "logscope_task_runs_total",
    "Analysis task runs by pipeline and status",
    labelnames=("pipeline", "status"),
)

TASK_LATENCY_SECONDS = Histogram(
    "logscope_task_latency_seconds",
    "End-to-end analysis task latency segmented by pipeline",
    labelnames=("pipeline",),
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30, 60, 120, float("inf")),
)

TASKS_ACTIVE_GAUGE = Gauge(
    "logscope_tasks_active",
    "Analysis tasks currently in flight",
)

TASK_SUCCESS_RATE = Gauge(
    "logscope_task_success_rate",
    "Cumulative analysis task success rate",
)


def observe_agent_latency(*, agent: str, latency: float) -> None:
    AGENT_LATENCY_SECONDS.labels(agent=agent).observe(latency)


def increment_agent_event(*, agent: str, event: str) -> None:
    AGENT_EVENT_TOTAL.labels(agent=agent, event=event).inc()


def record_health_check(*, agent: str, healthy: bool) -> None:
    AGENT_HEALTH_CHECK_TOTAL.labels(agent=agent, outcome="healthy" if healthy else "unhealthy").inc()


def mark_task_started(*, pipeline: str) -> None:
    TASKS_ACTIVE_GAUGE.inc()
    TASK_RUNS_TOTAL.labels(pipeline=pipeline, status="started").inc()


def mark_task_finished(*, pipeline: str, status: str, latency: float) -> None:
    TASKS_ACTIVE_GAUGE.dec()
    TASK_RUNS_TOTAL.labels(pipeline=pipeline, status=status).inc()
    TASK_LATENCY_SECONDS.labels(pipeline=pipeline).observe(latency)


def update_success_rate(*, successful: int, total: int) -> None:
    if total <= 0:
        return
    TASK_SUCCESS_RATE.set(successful / total)
