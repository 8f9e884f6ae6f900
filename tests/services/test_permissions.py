"""Table-driven tests for the role/operation/status/ownership matrix."""

import itertools

import pytest

from curation_stage.core.errors import PermissionDenied
from curation_stage.models.moderation import ContentStatus
from curation_stage.models.user import Role
from curation_stage.services.permissions import (
    Caller,
    Operation,
    Privilege,
    ResourceView,
    can_perform,
    privilege_of,
    require,
)

PENDING = ContentStatus.PENDING
APPROVED = ContentStatus.APPROVED
REJECTED = ContentStatus.REJECTED

EVERY_VIEW = frozenset(itertools.product(ContentStatus, (True, False)))
OWN_UNAPPROVED = frozenset({(PENDING, True), (REJECTED, True)})

# (status, owned) pairs for which each privilege class may perform each operation.
ALLOWED: dict[Privilege, dict[Operation, frozenset]] = {
    Privilege.VIEWER_RESTRICTED: {
        Operation.READ: frozenset({(APPROVED, True), (APPROVED, False)}),
    },
    Privilege.AUTHOR: {
        Operation.READ: frozenset({(APPROVED, True), (APPROVED, False), (PENDING, True), (REJECTED, True)}),
        Operation.CREATE: EVERY_VIEW,
        Operation.UPDATE: OWN_UNAPPROVED,
        Operation.DELETE: OWN_UNAPPROVED,
        Operation.REORDER: OWN_UNAPPROVED,
    },
    Privilege.SUPERVISOR: {operation: EVERY_VIEW for operation in Operation},
}


@pytest.mark.parametrize(
    ("role", "operation", "status", "owned"),
    list(itertools.product(Role, Operation, ContentStatus, (True, False))),
)
def test_matrix_matches_table(role, operation, status, owned) -> None:
    expected = (status, owned) in ALLOWED[privilege_of(role)].get(operation, frozenset())

    decision = can_perform(role, operation, ResourceView(status=status, owned=owned))

    assert bool(decision) is expected
    assert decision.allowed is expected
    if not expected:
        assert decision.reason


def test_role_privilege_mapping() -> None:
    assert privilege_of(Role.USER_SELF) is Privilege.VIEWER_RESTRICTED
    assert privilege_of(Role.USER_PARENT) is Privilege.VIEWER_RESTRICTED
    assert privilege_of(Role.ADMIN) is Privilege.AUTHOR
    assert privilege_of(Role.SUPERADMIN) is Privilege.SUPERVISOR
    assert Caller(user_id=1, role=Role.ADMIN).privilege is Privilege.AUTHOR


@pytest.mark.parametrize("role", list(Role))
def test_change_status_is_supervisor_only_even_without_resource(role) -> None:
    expected = role is Role.SUPERADMIN
    assert bool(can_perform(role, Operation.CHANGE_STATUS)) is expected


def test_create_needs_no_resource() -> None:
    assert can_perform(Role.ADMIN, Operation.CREATE)
    assert not can_perform(Role.USER_PARENT, Operation.CREATE)


@pytest.mark.parametrize("operation", [Operation.READ, Operation.UPDATE, Operation.DELETE, Operation.REORDER])
def test_missing_resource_is_denied_below_supervisor(operation) -> None:
    assert not can_perform(Role.ADMIN, operation)
    assert not can_perform(Role.USER_SELF, operation)
    assert can_perform(Role.SUPERADMIN, operation)


def test_scope_without_status_counts_as_not_approved() -> None:
    org_scope = ResourceView(status=None, owned=True)

    assert can_perform(Role.ADMIN, Operation.REORDER, org_scope)
    assert can_perform(Role.ADMIN, Operation.READ, org_scope)
    assert not can_perform(Role.USER_SELF, Operation.REORDER, org_scope)
    assert not can_perform(Role.USER_SELF, Operation.READ, org_scope)


def test_require_raises_with_reason() -> None:
    with pytest.raises(PermissionDenied) as exc_info:
        require(Role.ADMIN, Operation.UPDATE, ResourceView(status=APPROVED, owned=True))

    assert exc_info.value.status_code == 403
    assert "Approved" in exc_info.value.detail


def test_require_passes_silently_when_allowed() -> None:
    require(Role.ADMIN, Operation.UPDATE, ResourceView(status=REJECTED, owned=True))
