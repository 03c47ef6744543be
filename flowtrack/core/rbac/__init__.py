"""Role model for FlowTrack."""

from .roles import (
    Role,
    APPROVER_ROLES,
    DEFAULT_ROLE_LABELS,
    DEFAULT_USERS,
    is_approver,
    approver_level,
    get_default_role_label,
    coerce_role,
)

__all__ = [
    "Role",
    "APPROVER_ROLES",
    "DEFAULT_ROLE_LABELS",
    "DEFAULT_USERS",
    "is_approver",
    "approver_level",
    "get_default_role_label",
    "coerce_role",
]
