from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge


REGISTRY = CollectorRegistry()

HEALTH_HITS = Counter("ogf_api_healthz_hits", "Health endpoint hits", registry=REGISTRY)
READY_GAUGE = Gauge("ogf_api_ready", "Readiness status (1=ready, 0=not)", registry=REGISTRY)
PIPELINE_RUNS = Counter(
    "ogf_pipeline_runs_total", "Preview pipeline runs by outcome", ["outcome"], registry=REGISTRY
)
STAGE_FAILURES = Counter(
    "ogf_pipeline_stage_failures_total", "Pipeline stage failures by stage", ["stage"], registry=REGISTRY
)
