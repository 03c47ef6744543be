"""Factory helpers for building test requests.

All fields have sensible defaults but can be overridden via keyword
arguments.

Usage::

    from tests.factories import create_request

    def test_something(engine):
        request = create_request(engine, requested_price=500)
        assert request.status == RequestStatus.PENDING_L1
"""

from typing import Any, Dict

from flowtrack.core.workflow.service import WorkflowEngine
from flowtrack.schemas import SalesRequest


_counter = 0


def _next_id() -> int:
    """Return a monotonically increasing integer for unique default values."""
    global _counter
    _counter += 1
    return _counter


def build_facts(**overrides: Any) -> Dict[str, Any]:
    n = _next_id()
    facts = {
        "reference_code": f"ICIRS-{n:05d}",
        "customer_name": f"Customer {n}",
        "territory": "EMEA",
        "weight": "500kg",
        "destination": "Rotterdam",
        "requested_price": 10000.0,
        "submitter_email": f"sales{n}@example.com",
    }
    facts.update(overrides)
    return facts


def create_request(
    engine: WorkflowEngine,
    created_by: str = "john",
    **overrides: Any,
) -> SalesRequest:
    return engine.create(build_facts(**overrides), created_by)
