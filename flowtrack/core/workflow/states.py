"""Request workflow states and transitions.

State Machine Diagram (two-level chain):

    ┌──────────┐
    │  DRAFT   │ ← Exists only before the first write
    └────┬─────┘
         │ submit (Salesperson)
    ┌────▼──────┐  reject (L1)   ┌──────────┐
    │PENDING_L1 │───────────────►│ REJECTED │
    └────┬──────┘                └──────────┘
         │ approve (L1)               ▲
    ┌────▼──────┐  reject (L2)        │
    │PENDING_L2 │─────────────────────┘
    └────┬──────┘
         │ approve (L2)
    ┌────▼─────┐
    │ APPROVED │
    └────┬─────┘
         │ complete (creator only)
    ┌────▼──────┐
    │ COMPLETED │ ⟲ complete (fulfillment update)
    └───────────┘

With an approver chain of length N, approve at level k moves to
PENDING_L(k+1) while k < N, and to APPROVED at k == N.
"""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Dict, List, NamedTuple, Optional, Set, Tuple

from flowtrack.core.rbac.roles import APPROVER_ROLES, Role, approver_level


class RequestStatus(str, Enum):
    """States in the request workflow."""

    # Before persistence
    DRAFT = "Draft"

    # Awaiting an approver, one state per level
    PENDING_L1 = "PendingL1"
    PENDING_L2 = "PendingL2"
    PENDING_L3 = "PendingL3"

    # Outcomes
    APPROVED = "Approved"        # Passed every level, awaiting fulfillment
    REJECTED = "Rejected"        # Turned down at some level
    COMPLETED = "Completed"      # Fulfillment recorded by the submitter


class RequestAction(str, Enum):
    """Actions that trigger status transitions."""

    SUBMIT = "submit"        # DRAFT → PENDING_L1
    APPROVE = "approve"      # PENDING_Lk → PENDING_L(k+1) / APPROVED
    REJECT = "reject"        # PENDING_Lk → REJECTED
    COMPLETE = "complete"    # APPROVED → COMPLETED, COMPLETED → COMPLETED


class HistoryAction(str, Enum):
    """Labels written to the audit history."""

    CREATED = "Created"
    ESCALATED = "Escalated"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    COMPLETED = "Completed"
    FULFILLMENT_UPDATED = "FulfillmentUpdated"


class TransitionRule(NamedTuple):
    """Defines a valid status transition."""
    from_status: RequestStatus
    to_status: RequestStatus
    action: RequestAction
    label: HistoryAction
    required_role: Optional[Role] = None
    requires_note: bool = False


PENDING_STATUSES: List[RequestStatus] = [
    RequestStatus.PENDING_L1,
    RequestStatus.PENDING_L2,
    RequestStatus.PENDING_L3,
]

# No outgoing transitions except fulfillment updates on COMPLETED
TERMINAL_STATUSES: Set[RequestStatus] = {
    RequestStatus.REJECTED,
    RequestStatus.COMPLETED,
}

# Passed the whole approval chain
APPROVED_STATUSES: Set[RequestStatus] = {
    RequestStatus.APPROVED,
    RequestStatus.COMPLETED,
}

# Statuses that may carry fulfillment details
FULFILLMENT_STATUSES: Set[RequestStatus] = APPROVED_STATUSES


def is_pending(status: RequestStatus) -> bool:
    """Check if a status is waiting on an approver."""
    return status in PENDING_STATUSES


def pending_status_for_level(level: int) -> RequestStatus:
    """Get the pending status for a 1-based approver level."""
    if not 1 <= level <= len(PENDING_STATUSES):
        raise ValueError(f"No pending status for approver level {level}")
    return PENDING_STATUSES[level - 1]


def level_for_status(status: RequestStatus) -> Optional[int]:
    """Get the approver level a pending status waits on."""
    if status not in PENDING_STATUSES:
        return None
    return PENDING_STATUSES.index(status) + 1


@dataclass(frozen=True)
class ApprovalChain:
    """
    Ordered approver levels of a deployment.

    The chain is always a prefix of L1 → L2 → L3.
    """

    levels: Tuple[Role, ...] = (Role.APPROVER_L1, Role.APPROVER_L2)

    def __post_init__(self):
        levels = tuple(Role(r) for r in self.levels)
        if not levels or levels != tuple(APPROVER_ROLES[:len(levels)]):
            raise ValueError(
                f"Approver chain must be a non-empty prefix of "
                f"{[r.value for r in APPROVER_ROLES]}, got {[r.value for r in levels]}"
            )
        object.__setattr__(self, "levels", levels)

    @classmethod
    def with_depth(cls, depth: int) -> "ApprovalChain":
        """Build the chain L1..L<depth>."""
        if not 1 <= depth <= len(APPROVER_ROLES):
            raise ValueError(f"Approval chain depth must be 1-{len(APPROVER_ROLES)}, got {depth}")
        return cls(tuple(APPROVER_ROLES[:depth]))

    @property
    def depth(self) -> int:
        return len(self.levels)

    @property
    def first_status(self) -> RequestStatus:
        """Status a freshly submitted request enters."""
        return pending_status_for_level(1)

    @property
    def pending_statuses(self) -> List[RequestStatus]:
        return PENDING_STATUSES[:self.depth]

    def level_of(self, role: Role) -> Optional[int]:
        """Level of a role in this chain, or None if it is not part of it."""
        level = approver_level(role)
        if level is None or level > self.depth:
            return None
        return level

    def level_for_status(self, status: RequestStatus) -> Optional[int]:
        level = level_for_status(status)
        if level is None or level > self.depth:
            return None
        return level

    def next_status(self, level: int) -> RequestStatus:
        """Status reached when level ``level`` approves."""
        if level < self.depth:
            return pending_status_for_level(level + 1)
        return RequestStatus.APPROVED

    def build_rules(self) -> List[TransitionRule]:
        """Generate every valid transition for this chain."""
        rules = [
            TransitionRule(RequestStatus.DRAFT, self.first_status, RequestAction.SUBMIT,
                           HistoryAction.CREATED, Role.SALESPERSON),
        ]

        for level, role in enumerate(self.levels, start=1):
            pending = pending_status_for_level(level)
            target = self.next_status(level)
            label = HistoryAction.APPROVED if target == RequestStatus.APPROVED else HistoryAction.ESCALATED
            rules.append(TransitionRule(pending, target, RequestAction.APPROVE, label, role))
            rules.append(TransitionRule(pending, RequestStatus.REJECTED, RequestAction.REJECT,
                                        HistoryAction.REJECTED, role, requires_note=True))

        # Fulfillment is gated on the creator's identity, not on a role
        rules.append(TransitionRule(RequestStatus.APPROVED, RequestStatus.COMPLETED,
                                    RequestAction.COMPLETE, HistoryAction.COMPLETED))
        rules.append(TransitionRule(RequestStatus.COMPLETED, RequestStatus.COMPLETED,
                                    RequestAction.COMPLETE, HistoryAction.FULFILLMENT_UPDATED))
        return rules


DEFAULT_CHAIN = ApprovalChain()


@lru_cache(maxsize=None)
def transition_table(chain: ApprovalChain) -> Dict[Tuple[RequestStatus, RequestAction], TransitionRule]:
    """Lookup table of (from_status, action) → rule for a chain."""
    return {(rule.from_status, rule.action): rule for rule in chain.build_rules()}


def can_transition(
    from_status: RequestStatus,
    action: RequestAction,
    chain: ApprovalChain = DEFAULT_CHAIN,
) -> bool:
    """Check if an action is valid from the given status."""
    return (from_status, action) in transition_table(chain)


def get_transition_rule(
    from_status: RequestStatus,
    action: RequestAction,
    chain: ApprovalChain = DEFAULT_CHAIN,
) -> Optional[TransitionRule]:
    """Get the transition rule for a status/action combination."""
    return transition_table(chain).get((from_status, action))


def get_target_status(
    from_status: RequestStatus,
    action: RequestAction,
    chain: ApprovalChain = DEFAULT_CHAIN,
) -> Optional[RequestStatus]:
    """Get the target status for a transition."""
    rule = get_transition_rule(from_status, action, chain)
    return rule.to_status if rule else None
