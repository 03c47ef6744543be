"""Shared service instances built from settings.

Workers and other entry points get their engine, store and analyzer
here instead of building them ad hoc.
"""

from functools import lru_cache

from flowtrack.core.config import get_settings
from flowtrack.core.logger import configure_logging
from flowtrack.core.workflow.states import ApprovalChain
from flowtrack.core.workflow.service import WorkflowEngine
from flowtrack.services.enrichment import RiskAnalyzer
from flowtrack.services.notifications import NotificationService
from flowtrack.store import Store, create_store


@lru_cache
def get_store() -> Store:
    settings = get_settings()
    configure_logging(settings)
    return create_store(settings)


@lru_cache
def get_notification_service() -> NotificationService:
    return NotificationService(get_store(), write_retries=get_settings().write_retries)


@lru_cache
def get_workflow_engine() -> WorkflowEngine:
    settings = get_settings()
    return WorkflowEngine(
        get_store(),
        get_notification_service(),
        chain=ApprovalChain.with_depth(settings.approval_levels),
        write_retries=settings.write_retries,
    )


@lru_cache
def get_risk_analyzer() -> RiskAnalyzer:
    return RiskAnalyzer(get_settings())
