"""User accounts and role display labels.

Plain CRUD over the user and role-label tables. Only an Admin may change
them. The workflow never reads either table: it works with the role a
caller presents and the creator identity stored on each request.
"""

import logging
import uuid
from typing import Dict, List, Optional, Union

from pydantic import ValidationError

from flowtrack.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from flowtrack.core.rbac.roles import Role, coerce_role, get_default_role_label
from flowtrack.core.security import get_password_hash, verify_password
from flowtrack.schemas import RoleLabel, User, UserInput
from flowtrack.store import Store

logger = logging.getLogger(__name__)


def _require_admin(acting_role: Union[Role, str], what: str) -> None:
    if coerce_role(acting_role) != Role.ADMIN:
        raise PermissionDeniedError(f"only an Admin can {what}")


class UserDirectory:
    """Service for user accounts."""

    def __init__(self, store: Store):
        self.store = store

    def list_users(self) -> List[User]:
        return self.store.users.list_all()

    def get_user(self, user_id: str) -> User:
        user = self.store.users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def find_by_username(self, username: str) -> Optional[User]:
        """Case-insensitive lookup by login name."""
        wanted = (username or "").strip().lower()
        for user in self.store.users.list_all():
            if user.username.lower() == wanted:
                return user
        return None

    def authenticate(self, username: str, password: str) -> Optional[User]:
        """
        Check a login.

        Returns:
            The user on success, None otherwise
        """
        user = self.find_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            logger.info(f"Failed login for {username!r}")
            return None
        return user

    def save_user(self, data: Union[UserInput, Dict], acting_role: Union[Role, str]) -> User:
        """
        Create or update a user.

        A new user needs a password. When editing, an omitted password
        keeps the stored hash.

        Raises:
            PermissionDeniedError: If the caller is not an Admin
            ValidationFailedError: If input is invalid or the username is taken
            NotFoundError: If an edited user does not exist
        """
        _require_admin(acting_role, "manage users")
        try:
            data = UserInput.model_validate(data if isinstance(data, dict) else data.model_dump())
        except ValidationError as e:
            raise ValidationFailedError("Invalid user", [err["msg"] for err in e.errors()]) from e

        existing = self.get_user(data.id) if data.id else None

        clash = self.find_by_username(data.username)
        if clash is not None and (existing is None or clash.id != existing.id):
            raise ValidationFailedError(
                f"Username {data.username} is already taken",
                ["username: must be unique"],
            )

        if existing is None:
            if not data.password:
                raise ValidationFailedError("Password is required for a new user", ["password: required"])
            user = User(
                id=str(uuid.uuid4()),
                name=data.name,
                username=data.username,
                password_hash=get_password_hash(data.password),
                role=data.role,
            )
            saved = self.store.users.upsert(user, expected_version=0)
            logger.info(f"Created user {saved.username} ({saved.role.value})")
            return saved

        updated = existing.model_copy(update={
            "name": data.name,
            "username": data.username,
            "role": data.role,
            "password_hash": get_password_hash(data.password) if data.password else existing.password_hash,
        })
        saved = self.store.users.upsert(updated)
        logger.info(f"Updated user {saved.username} ({saved.role.value})")
        return saved

    def delete_user(self, user_id: str, acting_role: Union[Role, str]) -> None:
        """Delete a user. Requests keep their creator identity."""
        _require_admin(acting_role, "manage users")
        if not self.store.users.delete(user_id):
            raise NotFoundError("User", user_id)
        logger.info(f"Deleted user {user_id}")


class RoleLabelDirectory:
    """Cosmetic display names for roles."""

    def __init__(self, store: Store):
        self.store = store

    def labels(self) -> Dict[Role, str]:
        return {label.role: label.label for label in self.store.role_labels.list_all()}

    def label_for(self, role: Union[Role, str]) -> str:
        role = coerce_role(role)
        return self.labels().get(role) or get_default_role_label(role)

    def update_labels(self, mapping: Dict[Union[Role, str], str], acting_role: Union[Role, str]) -> Dict[Role, str]:
        """
        Replace display labels for the given roles.

        Raises:
            PermissionDeniedError: If the caller is not an Admin
            ValidationFailedError: If a label is blank
        """
        _require_admin(acting_role, "edit role labels")
        cleaned = {}
        for key, text in mapping.items():
            role = coerce_role(key)
            text = (text or "").strip()
            if not text:
                raise ValidationFailedError(f"Label for {role.value} must not be empty", [f"{role.value}: empty"])
            cleaned[role] = text

        for role, text in cleaned.items():
            self.store.role_labels.upsert(RoleLabel(id=role.value, role=role, label=text))
        logger.info(f"Updated role labels: {', '.join(role.value for role in cleaned)}")
        return self.labels()
