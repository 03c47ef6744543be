"""Tests for background enrichment tasks."""

from unittest.mock import Mock

import pytest

from flowtrack import deps
from flowtrack.core.rbac.roles import Role
from flowtrack.core.workflow.states import RequestStatus
from flowtrack.schemas import Enrichment, RiskLevel
from flowtrack.services.enrichment import PLACEHOLDER_ENRICHMENT
from flowtrack.workers import enrichment_tasks
from flowtrack.workers.enrichment_tasks import enrich_request, run_enrichment, schedule_enrichment

from tests.factories import create_request


SCORED = Enrichment(risk_score=20, risk_level=RiskLevel.LOW, summary="ok", recommendation="go")


@pytest.fixture
def analyzer():
    analyzer = Mock()
    analyzer.analyze_or_placeholder.return_value = SCORED
    return analyzer


class TestRunEnrichment:
    """Tests for the task body."""

    def test_attaches_result(self, engine, analyzer):
        request = create_request(engine)

        result = run_enrichment(engine, analyzer, request.id)

        assert result["riskLevel"] == "Low"
        assert engine.get(request.id).enrichment == SCORED
        facts = analyzer.analyze_or_placeholder.call_args.args[0]
        assert facts.reference_code == request.reference_code

    def test_late_result_after_decision(self, engine, analyzer):
        """Test a result arriving after rejection is still attached."""
        request = create_request(engine)
        engine.reject(request.id, Role.APPROVER_L1, "no")

        run_enrichment(engine, analyzer, request.id)

        stored = engine.get(request.id)
        assert stored.status == RequestStatus.REJECTED
        assert stored.enrichment == SCORED

    def test_placeholder(self, engine, analyzer):
        analyzer.analyze_or_placeholder.return_value = PLACEHOLDER_ENRICHMENT
        request = create_request(engine)

        run_enrichment(engine, analyzer, request.id)

        assert engine.get(request.id).enrichment.risk_score == 50

    def test_nothing_produced(self, engine, analyzer):
        analyzer.analyze_or_placeholder.return_value = None
        request = create_request(engine)

        assert run_enrichment(engine, analyzer, request.id) is None
        assert engine.get(request.id).enrichment is None

    def test_deleted_request_skipped(self, engine, analyzer):
        """Test a request removed before the task runs is skipped."""
        assert run_enrichment(engine, analyzer, "missing") is None
        analyzer.analyze_or_placeholder.assert_not_called()


class TestEnrichRequestTask:
    """Tests for the Celery task wiring."""

    def test_task_runs_locally(self, engine, analyzer, monkeypatch):
        monkeypatch.setattr(deps, "get_workflow_engine", lambda: engine)
        monkeypatch.setattr(deps, "get_risk_analyzer", lambda: analyzer)
        request = create_request(engine)

        result = enrich_request.apply(args=[request.id]).get()

        assert result["riskScore"] == 20
        assert engine.get(request.id).enrichment == SCORED

    def test_routed_to_enrichment_queue(self):
        routes = enrichment_tasks.celery_app.conf.task_routes
        assert routes["flowtrack.workers.enrichment_tasks.enrich_request"] == {"queue": "enrichment"}


class TestScheduleEnrichment:
    """Tests for queueing enrichment."""

    def test_schedules_when_enabled(self, engine, settings, monkeypatch):
        task = Mock()
        monkeypatch.setattr(enrichment_tasks, "enrich_request", task)
        monkeypatch.setattr(
            enrichment_tasks, "get_settings",
            lambda: settings.model_copy(update={"enrichment_url": "http://risk.local"}),
        )
        request = create_request(engine)

        schedule_enrichment(request)

        task.delay.assert_called_once_with(request.id)

    def test_skips_when_disabled(self, engine, settings, monkeypatch):
        task = Mock()
        monkeypatch.setattr(enrichment_tasks, "enrich_request", task)
        monkeypatch.setattr(enrichment_tasks, "get_settings", lambda: settings)

        assert schedule_enrichment(create_request(engine)) is None
        task.delay.assert_not_called()
