"""Celery workers for FlowTrack."""

from flowtrack.workers.enrichment_tasks import (
    celery_app,
    enrich_request,
    run_enrichment,
    schedule_enrichment,
)

__all__ = [
    "celery_app",
    "enrich_request",
    "run_enrichment",
    "schedule_enrichment",
]
