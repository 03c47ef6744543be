"""Request state machine implementation.

Handles status transitions with validation of the acting role, the
required justification note and the approver level.
"""

from typing import Optional

from flowtrack.core.errors import TransitionError, ValidationFailedError
from flowtrack.core.rbac.roles import Role

from .states import (
    ApprovalChain,
    DEFAULT_CHAIN,
    RequestAction,
    RequestStatus,
    TERMINAL_STATUSES,
    TransitionRule,
    get_transition_rule,
)


class RequestStateMachine:
    """
    State machine for a single sales request.

    Manages transitions between request statuses with:
    - Validation of valid transitions for the configured chain
    - Role checking, an approver may only act on its own level
    - Required notes for rejections
    """

    def __init__(
        self,
        current_status: RequestStatus,
        chain: ApprovalChain = DEFAULT_CHAIN,
        *,
        request_id: Optional[str] = None,
    ):
        """
        Initialize the state machine.

        Args:
            current_status: Current request status
            chain: Approver chain of the deployment
            request_id: ID of the request, named in error messages
        """
        self.request_id = request_id
        self.chain = chain
        self._status = RequestStatus(current_status)

    @property
    def status(self) -> RequestStatus:
        """Current status of the request."""
        return self._status

    @property
    def _subject(self) -> str:
        return f"request {self.request_id}" if self.request_id else "a request"

    @property
    def is_terminal(self) -> bool:
        """Check if current status is terminal."""
        return self._status in TERMINAL_STATUSES

    def can_perform(self, action: RequestAction, role: Optional[Role] = None) -> bool:
        """Check if ``role`` may perform ``action`` from the current status."""
        rule = get_transition_rule(self._status, action, self.chain)
        if rule is None:
            return False
        if rule.required_role is not None and role != rule.required_role:
            return False
        return True

    def get_available_actions(self, role: Optional[Role] = None) -> list[RequestAction]:
        """Get list of actions ``role`` can perform from current status."""
        return [action for action in RequestAction if self.can_perform(action, role)]

    def transition(
        self,
        action: RequestAction,
        role: Optional[Role] = None,
        *,
        note: Optional[str] = None,
    ) -> TransitionRule:
        """
        Perform a status transition.

        Args:
            action: The action to perform
            role: Role of the acting user
            note: Optional note (required for rejections)

        Returns:
            The rule that was applied; ``rule.to_status`` is the new status

        Raises:
            TransitionError: If the action is not legal here for this role
            ValidationFailedError: If a required note is missing
        """
        action = RequestAction(action)
        rule = get_transition_rule(self._status, action, self.chain)
        if rule is None:
            raise TransitionError(
                f"Cannot {action.value} {self._subject} in status {self._status.value}",
                self._status,
                action,
            )

        if rule.required_role is not None and role != rule.required_role:
            acting = role.value if role is not None else "anonymous"
            raise TransitionError(
                f"{acting} cannot {action.value} {self._subject} in status {self._status.value}; "
                f"requires {rule.required_role.value}",
                self._status,
                action,
            )

        if rule.requires_note and not (note and note.strip()):
            raise ValidationFailedError(
                f"Action {action.value} requires a justification note",
                ["note: must not be empty"],
            )

        self._status = rule.to_status
        return rule

