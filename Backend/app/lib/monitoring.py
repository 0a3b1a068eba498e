# app/lib/monitoring.py
from fastapi import FastAPI
from prometheus_client.registry import CollectorRegistry as Registry
from prometheus_client import Counter, Gauge
from prometheus_fastapi_instrumentator import Instrumentator
from app.core.logging import log

# Create a separate registry
registry = Registry()

active_sandboxes = Gauge(
    'studio_active_sandboxes',
    'Number of sandbox sessions held by the session store',
    registry=registry
)

launch_attempts = Counter(
    'studio_launch_attempts_total',
    'Dev server launch attempts by outcome',
    ['outcome'],
    registry=registry
)

self_heal_invocations = Counter(
    'studio_self_heal_invocations_total',
    'Corrective agent invocations issued by the self-heal loop',
    registry=registry
)

workflow_runs = Counter(
    'studio_workflow_runs_total',
    'Finished workflow runs by outcome',
    ['outcome'],
    registry=registry
)


def set_active_sandboxes(n: int):
    """Sets the value of the active sandboxes gauge."""
    active_sandboxes.set(n)


def record_launch_attempt(success: bool):
    launch_attempts.labels(outcome="success" if success else "failure").inc()


def record_self_heal():
    self_heal_invocations.inc()


def record_workflow_run(outcome: str):
    """outcome: success | exhausted | failed"""
    workflow_runs.labels(outcome=outcome).inc()


def register_monitoring(app: FastAPI):
    """
    Registers Prometheus monitoring on the FastAPI app and exposes /metrics.
    """
    instrumentator = Instrumentator(
        excluded_handlers=["/metrics"],  # Don't monitor the metrics endpoint itself
        registry=registry  # Use our custom registry
    ).instrument(app)

    instrumentator.expose(app, include_in_schema=False, should_gzip=True)

    log("MONITORING", "Prometheus instrumentation registered at /metrics.")
