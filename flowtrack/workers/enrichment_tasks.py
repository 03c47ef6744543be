"""Celery tasks for risk enrichment.

A request is scored once, in the background, after it is created. The
task never holds anything on the request while the scoring call runs;
it writes the result back through ``attach_enrichment``, whatever the
request's status is by then.
"""

from typing import Any, Dict, Optional
import logging

from celery import Celery, shared_task

from flowtrack.core.config import get_settings
from flowtrack.core.errors import NotFoundError, TransitionError
from flowtrack.core.workflow.service import WorkflowEngine
from flowtrack.schemas import SalesRequest
from flowtrack.services.enrichment import RiskAnalyzer

logger = logging.getLogger(__name__)
settings = get_settings()

# Initialize Celery
celery_app = Celery(
    'flowtrack',
    broker=settings.celery_broker,
    backend=settings.celery_backend,
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_routes={
        'flowtrack.workers.enrichment_tasks.enrich_request': {'queue': 'enrichment'},
    },
    task_default_queue='default',
)


def run_enrichment(
    engine: WorkflowEngine,
    analyzer: RiskAnalyzer,
    request_id: str,
) -> Optional[Dict[str, Any]]:
    """
    Score one request and attach the result.

    Args:
        engine: Workflow engine owning the request
        analyzer: Risk scoring client
        request_id: ID of the request to score

    Returns:
        The attached annotation, or None when nothing was attached
    """
    try:
        request = engine.get(request_id)
    except NotFoundError:
        logger.info(f"Request {request_id} no longer exists, skipping enrichment")
        return None

    enrichment = analyzer.analyze_or_placeholder(request.facts())
    if enrichment is None:
        logger.debug(f"No enrichment produced for request {request_id}")
        return None

    try:
        engine.attach_enrichment(request_id, enrichment)
    except NotFoundError:
        logger.info(f"Request {request_id} was deleted during enrichment, result dropped")
        return None

    return enrichment.model_dump(mode="json", by_alias=True)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def enrich_request(self, request_id: str) -> Optional[Dict[str, Any]]:
    """
    Async task to enrich a single request.

    Args:
        request_id: ID of the request

    Returns:
        The attached annotation in wire format, or None
    """
    from flowtrack.deps import get_risk_analyzer, get_workflow_engine

    try:
        return run_enrichment(get_workflow_engine(), get_risk_analyzer(), request_id)
    except TransitionError as e:
        # Lost every write-back race to reviewers; try again later
        logger.warning(f"Enrichment write-back for {request_id} kept conflicting: {e}")
        raise self.retry(exc=e)


def schedule_enrichment(request: SalesRequest):
    """Queue background enrichment for a freshly created request."""
    if not get_settings().enrichment_enabled:
        logger.debug(f"Enrichment disabled, not scheduling request {request.id}")
        return None
    return enrich_request.delay(request.id)
