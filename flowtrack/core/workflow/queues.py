"""Role-based views over a list of requests.

Pure filters: they never read or write the store. Input order is kept,
so passing the newest-first request table yields newest-first views.
"""

from typing import Iterable, List, Optional

from flowtrack.core.rbac.roles import Role, approver_level, coerce_role
from flowtrack.schemas import DashboardStats, SalesRequest

from .states import (
    APPROVED_STATUSES,
    ApprovalChain,
    DEFAULT_CHAIN,
    HistoryAction,
    is_pending,
    RequestStatus,
    pending_status_for_level,
)

# Requests that have left the approval chain
DECIDED_STATUSES = {
    RequestStatus.APPROVED,
    RequestStatus.REJECTED,
    RequestStatus.COMPLETED,
}


def visible_queue(
    role: Role,
    requests: Iterable[SalesRequest],
    chain: ApprovalChain = DEFAULT_CHAIN,
) -> List[SalesRequest]:
    """
    Requests a role works on.

    Admin and Salesperson see everything. An approver sees only the
    requests waiting on its own level; a level outside the chain sees
    nothing.
    """
    role = coerce_role(role)
    requests = list(requests)
    if role in (Role.ADMIN, Role.SALESPERSON):
        return requests

    level = chain.level_of(role)
    if level is None:
        return []
    waiting = pending_status_for_level(level)
    return [r for r in requests if r.status == waiting]


def rejected_at_level(request: SalesRequest) -> Optional[int]:
    """Approver level that rejected a request, read from its history."""
    for event in reversed(request.history):
        if event.action == HistoryAction.REJECTED:
            return approver_level(event.actor)
    return None


def processed_history(
    role: Role,
    requests: Iterable[SalesRequest],
    chain: ApprovalChain = DEFAULT_CHAIN,
) -> List[SalesRequest]:
    """
    Requests a role has already passed judgment on.

    For an approver at level k: requests pending above k, approved or
    completed requests, and requests rejected at level k or higher.
    Admin gets every decided request; Salesperson gets nothing.
    """
    role = coerce_role(role)
    requests = list(requests)
    if role == Role.ADMIN:
        return [r for r in requests if r.status in DECIDED_STATUSES]
    if role == Role.SALESPERSON:
        return []

    level = chain.level_of(role)
    if level is None:
        return []

    processed = []
    for request in requests:
        pending_level = chain.level_for_status(request.status)
        if pending_level is not None:
            if pending_level > level:
                processed.append(request)
        elif request.status in APPROVED_STATUSES:
            processed.append(request)
        elif request.status == RequestStatus.REJECTED:
            rejected_by = rejected_at_level(request)
            if rejected_by is not None and rejected_by >= level:
                processed.append(request)
    return processed


def summarize(requests: Iterable[SalesRequest]) -> DashboardStats:
    """Totals for the dashboard."""
    stats = DashboardStats()
    for request in requests:
        stats.total_requests += 1
        if request.status in APPROVED_STATUSES:
            stats.approved += 1
            stats.approved_value += request.requested_price
            if request.status == RequestStatus.COMPLETED:
                stats.completed += 1
        elif request.status == RequestStatus.REJECTED:
            stats.rejected += 1
        elif is_pending(request.status):
            stats.pending += 1
            stats.pending_value += request.requested_price
    return stats
