"""Request approval workflow.

States, transition rules and the per-request state machine. The
persistent engine lives in ``flowtrack.core.workflow.service``.
"""

from .states import (
    RequestStatus,
    RequestAction,
    HistoryAction,
    TransitionRule,
    ApprovalChain,
    DEFAULT_CHAIN,
    PENDING_STATUSES,
    TERMINAL_STATUSES,
    APPROVED_STATUSES,
    can_transition,
    get_transition_rule,
    get_target_status,
)
from .machine import RequestStateMachine

__all__ = [
    "RequestStatus",
    "RequestAction",
    "HistoryAction",
    "TransitionRule",
    "ApprovalChain",
    "DEFAULT_CHAIN",
    "PENDING_STATUSES",
    "TERMINAL_STATUSES",
    "APPROVED_STATUSES",
    "can_transition",
    "get_transition_rule",
    "get_target_status",
    "RequestStateMachine",
]
