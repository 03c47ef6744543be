"""Tests for the per-request state machine."""

import pytest

from flowtrack.core.errors import TransitionError, ValidationFailedError
from flowtrack.core.rbac.roles import Role
from flowtrack.core.workflow.machine import RequestStateMachine
from flowtrack.core.workflow.states import (
    ApprovalChain,
    HistoryAction,
    RequestAction,
    RequestStatus,
)


class TestRequestStateMachine:
    """Test state machine transitions and checks."""

    def test_initial_status(self):
        machine = RequestStateMachine(RequestStatus.PENDING_L1)
        assert machine.status == RequestStatus.PENDING_L1
        assert not machine.is_terminal

    def test_accepts_status_value(self):
        """Test that a raw status value is accepted."""
        machine = RequestStateMachine("PendingL2")
        assert machine.status == RequestStatus.PENDING_L2

    def test_approve_escalates(self):
        """Test L1 approval of a two-level chain."""
        machine = RequestStateMachine(RequestStatus.PENDING_L1, request_id="r1")
        rule = machine.transition(RequestAction.APPROVE, Role.APPROVER_L1, note="ok")

        assert rule.label == HistoryAction.ESCALATED
        assert machine.status == RequestStatus.PENDING_L2

    def test_final_approval(self):
        machine = RequestStateMachine(RequestStatus.PENDING_L2)
        machine.transition(RequestAction.APPROVE, Role.APPROVER_L2)
        assert machine.status == RequestStatus.APPROVED

    def test_wrong_level_is_refused(self):
        """Test that an L2 approver cannot act on PendingL1."""
        machine = RequestStateMachine(RequestStatus.PENDING_L1)

        with pytest.raises(TransitionError) as exc_info:
            machine.transition(RequestAction.APPROVE, Role.APPROVER_L2)

        assert exc_info.value.from_status == RequestStatus.PENDING_L1
        assert exc_info.value.action == RequestAction.APPROVE
        assert machine.status == RequestStatus.PENDING_L1

    def test_admin_cannot_review(self):
        machine = RequestStateMachine(RequestStatus.PENDING_L1)
        with pytest.raises(TransitionError):
            machine.transition(RequestAction.APPROVE, Role.ADMIN)

    def test_missing_role_is_refused(self):
        machine = RequestStateMachine(RequestStatus.PENDING_L1)
        with pytest.raises(TransitionError, match="anonymous"):
            machine.transition(RequestAction.REJECT, None, note="no")

    def test_reject_requires_note(self):
        """Test that rejection without a note fails validation."""
        machine = RequestStateMachine(RequestStatus.PENDING_L1)

        with pytest.raises(ValidationFailedError):
            machine.transition(RequestAction.REJECT, Role.APPROVER_L1)
        with pytest.raises(ValidationFailedError):
            machine.transition(RequestAction.REJECT, Role.APPROVER_L1, note="   ")

        assert machine.status == RequestStatus.PENDING_L1

    def test_role_checked_before_note(self):
        """Test that the wrong level fails as a transition error even without a note."""
        machine = RequestStateMachine(RequestStatus.PENDING_L1)
        with pytest.raises(TransitionError):
            machine.transition(RequestAction.REJECT, Role.APPROVER_L2)

    def test_reject(self):
        machine = RequestStateMachine(RequestStatus.PENDING_L2)
        machine.transition(RequestAction.REJECT, Role.APPROVER_L2, note="price too low")
        assert machine.status == RequestStatus.REJECTED
        assert machine.is_terminal

    def test_illegal_action(self):
        """Test that reviewing an approved request fails."""
        machine = RequestStateMachine(RequestStatus.APPROVED)
        with pytest.raises(TransitionError):
            machine.transition(RequestAction.APPROVE, Role.APPROVER_L2)

    def test_unknown_action_value(self):
        machine = RequestStateMachine(RequestStatus.PENDING_L1)
        with pytest.raises(ValueError):
            machine.transition("escalate", Role.APPROVER_L1)

    def test_complete_has_no_role_gate(self):
        """Test that fulfillment is not gated on a role."""
        machine = RequestStateMachine(RequestStatus.APPROVED)
        rule = machine.transition(RequestAction.COMPLETE)
        assert rule.label == HistoryAction.COMPLETED
        assert machine.status == RequestStatus.COMPLETED

    def test_available_actions(self):
        """Test available actions per role."""
        machine = RequestStateMachine(RequestStatus.PENDING_L1)
        assert machine.get_available_actions(Role.APPROVER_L1) == [RequestAction.APPROVE, RequestAction.REJECT]
        assert machine.get_available_actions(Role.APPROVER_L2) == []

    def test_three_level_chain(self):
        """Test the full three-level path."""
        machine = RequestStateMachine(RequestStatus.PENDING_L1, ApprovalChain.with_depth(3))
        machine.transition(RequestAction.APPROVE, Role.APPROVER_L1)
        machine.transition(RequestAction.APPROVE, Role.APPROVER_L2)
        assert machine.status == RequestStatus.PENDING_L3
        machine.transition(RequestAction.APPROVE, Role.APPROVER_L3)
        assert machine.status == RequestStatus.APPROVED

    def test_error_names_request(self):
        """Test that a refused transition names the request it was for."""
        machine = RequestStateMachine(RequestStatus.APPROVED, request_id="r1")
        with pytest.raises(TransitionError, match="request r1"):
            machine.transition(RequestAction.REJECT, Role.APPROVER_L1, note="no")

    def test_failed_transition_keeps_status(self):
        """Test that a machine is still usable after a refused transition."""
        machine = RequestStateMachine(RequestStatus.PENDING_L1)
        with pytest.raises(TransitionError):
            machine.transition(RequestAction.APPROVE, Role.APPROVER_L2)

        machine.transition(RequestAction.APPROVE, Role.APPROVER_L1)
        assert machine.status == RequestStatus.PENDING_L2
