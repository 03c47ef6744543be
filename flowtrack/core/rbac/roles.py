"""Role definitions for FlowTrack.

Defines the closed set of roles used for every authorization decision:
1. Admin - Manages users and role labels, sees every request
2. Salesperson - Submits requests and closes them out with shipment details
3. ApproverL1..ApproverL3 - One approval level each, in escalation order

Display labels are a separate, purely cosmetic mapping. Nothing in the
workflow reads them.
"""

from enum import Enum
from typing import Dict, List, Optional, Union

from flowtrack.core.errors import ValidationFailedError


class Role(str, Enum):
    """Roles a user can hold."""

    ADMIN = "Admin"
    SALESPERSON = "Salesperson"
    APPROVER_L1 = "ApproverL1"
    APPROVER_L2 = "ApproverL2"
    APPROVER_L3 = "ApproverL3"


# Escalation order; a deployment uses a prefix of this list
APPROVER_ROLES: List[Role] = [
    Role.APPROVER_L1,
    Role.APPROVER_L2,
    Role.APPROVER_L3,
]

DEFAULT_ROLE_LABELS: Dict[Role, str] = {
    Role.ADMIN: "Administrator",
    Role.SALESPERSON: "Salesperson",
    Role.APPROVER_L1: "Regional Manager (L1)",
    Role.APPROVER_L2: "VP of Sales (L2)",
    Role.APPROVER_L3: "Global Director (L3)",
}

# Default accounts, one per role
DEFAULT_USERS: List[dict] = [
    {"id": "1", "name": "System Admin", "username": "admin", "role": Role.ADMIN},
    {"id": "2", "name": "John Sales", "username": "john", "role": Role.SALESPERSON},
    {"id": "3", "name": "Sarah Manager", "username": "sarah", "role": Role.APPROVER_L1},
    {"id": "4", "name": "Mike VP", "username": "mike", "role": Role.APPROVER_L2},
    {"id": "5", "name": "David Director", "username": "david", "role": Role.APPROVER_L3},
]


def is_approver(role: Role) -> bool:
    """Check whether a role belongs to the approver chain."""
    return role in APPROVER_ROLES


def approver_level(role: Role) -> Optional[int]:
    """Get the 1-based escalation level of an approver role."""
    if not is_approver(role):
        return None
    return APPROVER_ROLES.index(role) + 1


def get_default_role_label(role: Role) -> str:
    """Get the default display label for a role."""
    return DEFAULT_ROLE_LABELS[coerce_role(role)]


def coerce_role(value: Union[Role, str]) -> Role:
    """
    Convert a caller-supplied role name to a Role.

    Raises:
        ValidationFailedError: If the name is not a known role
    """
    try:
        return Role(value)
    except ValueError as e:
        raise ValidationFailedError(f"Unknown role: {value!r}", [f"role: {value!r}"]) from e
