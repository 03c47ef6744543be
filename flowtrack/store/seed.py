"""Default records for FlowTrack.

Creates the default accounts (one per role) and the default role labels.
Tables call these on first access when they are empty.
"""

from typing import List, Optional

from flowtrack.core.config import get_settings
from flowtrack.core.rbac.roles import DEFAULT_ROLE_LABELS, DEFAULT_USERS
from flowtrack.core.security import get_password_hash
from flowtrack.schemas import RoleLabel, User


def default_users(password: Optional[str] = None) -> List[User]:
    """
    Build the default user accounts.

    Args:
        password: Plain password for every account; the configured
            default password when None

    Returns:
        List of users with hashed credentials
    """
    password = password or get_settings().default_user_password
    return [
        User(
            id=entry["id"],
            name=entry["name"],
            username=entry["username"],
            password_hash=get_password_hash(password),
            role=entry["role"],
        )
        for entry in DEFAULT_USERS
    ]


def default_role_labels() -> List[RoleLabel]:
    """Build the default role display labels."""
    return [
        RoleLabel(id=role.value, role=role, label=label)
        for role, label in DEFAULT_ROLE_LABELS.items()
    ]
