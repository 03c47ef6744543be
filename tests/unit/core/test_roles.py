"""Tests for role definitions."""

import pytest

from flowtrack.core.errors import ValidationFailedError
from flowtrack.core.rbac.roles import (
    APPROVER_ROLES,
    DEFAULT_USERS,
    Role,
    approver_level,
    coerce_role,
    get_default_role_label,
    is_approver,
)


class TestRoles:
    """Tests for the closed role set."""

    def test_role_values(self):
        assert [r.value for r in Role] == ["Admin", "Salesperson", "ApproverL1", "ApproverL2", "ApproverL3"]

    def test_approver_chain_order(self):
        """Test escalation order of approver roles."""
        assert APPROVER_ROLES == [Role.APPROVER_L1, Role.APPROVER_L2, Role.APPROVER_L3]
        assert approver_level(Role.APPROVER_L1) == 1
        assert approver_level(Role.APPROVER_L3) == 3

    def test_non_approvers(self):
        assert not is_approver(Role.ADMIN)
        assert not is_approver(Role.SALESPERSON)
        assert approver_level(Role.SALESPERSON) is None

    def test_default_labels(self):
        """Test default display labels."""
        assert get_default_role_label(Role.ADMIN) == "Administrator"
        assert get_default_role_label("ApproverL2") == "VP of Sales (L2)"

    def test_one_default_user_per_role(self):
        """Test that every role has exactly one default account."""
        assert sorted(u["role"].value for u in DEFAULT_USERS) == sorted(r.value for r in Role)
        assert {u["username"] for u in DEFAULT_USERS} == {"admin", "john", "sarah", "mike", "david"}

    def test_coerce_role(self):
        assert coerce_role("ApproverL1") is Role.APPROVER_L1
        assert coerce_role(Role.ADMIN) is Role.ADMIN

    def test_coerce_unknown_role(self):
        """Test that an unknown role name is a validation failure, not a ValueError."""
        with pytest.raises(ValidationFailedError, match="Unknown role") as exc_info:
            coerce_role("Intern")
        assert exc_info.value.details == ["role: 'Intern'"]
        with pytest.raises(ValidationFailedError):
            get_default_role_label("Intern")
