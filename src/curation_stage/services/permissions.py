"""Role-scoped permission matrix shared by every moderated content type.

The evaluator is a pure function of the caller's role, the requested operation
and a snapshot of the target resource. Callers resolve ownership beforehand;
sub-resources (FAQ answers, gallery images) are evaluated with their parent's
snapshot.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from curation_stage.core.errors import PermissionDenied
from curation_stage.models.moderation import ContentStatus
from curation_stage.models.user import Role


class Privilege(enum.IntEnum):
    """Privilege classes, ordered from least to most privileged."""

    VIEWER_RESTRICTED = 0
    AUTHOR = 1
    SUPERVISOR = 2


ROLE_PRIVILEGES: dict[Role, Privilege] = {
    Role.USER_SELF: Privilege.VIEWER_RESTRICTED,
    Role.USER_PARENT: Privilege.VIEWER_RESTRICTED,
    Role.ADMIN: Privilege.AUTHOR,
    Role.SUPERADMIN: Privilege.SUPERVISOR,
}


class Operation(str, enum.Enum):
    """Operations gated by the evaluator."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    CHANGE_STATUS = "changeStatus"
    REORDER = "reorder"


@dataclass(frozen=True, slots=True)
class Caller:
    """An already-authenticated identity and its role."""

    user_id: int
    role: Role

    @property
    def privilege(self) -> Privilege:
        return ROLE_PRIVILEGES[self.role]


@dataclass(frozen=True, slots=True)
class ResourceView:
    """The parts of an entity the evaluator looks at.

    ``status`` is ``None`` for scopes without a review state of their own,
    such as the global FAQ ordering.
    """

    status: ContentStatus | None
    owned: bool


@dataclass(frozen=True, slots=True)
class Decision:
    """Outcome of a permission check; truthy when the operation is allowed."""

    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


_ALLOW = Decision(True)

_MUTATIONS = frozenset({Operation.UPDATE, Operation.DELETE, Operation.REORDER})


def privilege_of(role: Role) -> Privilege:
    """Return the privilege class of a role."""
    return ROLE_PRIVILEGES[role]


def can_perform(
    role: Role,
    operation: Operation,
    resource: ResourceView | None = None,
) -> Decision:
    """Decide whether ``role`` may apply ``operation`` to ``resource``.

    Rules are evaluated in priority order and the first match wins:

    1. Status changes are reserved for supervisors.
    2. Supervisors may do anything else.
    3. Restricted viewers read approved content only; authors read approved
       content or their own.
    4. Authors may create.
    5. Authors may update, delete or reorder what they own while it is not
       approved.
    6. Everything else is denied.
    """
    privilege = privilege_of(role)

    if operation is Operation.CHANGE_STATUS:
        if privilege is Privilege.SUPERVISOR:
            return _ALLOW
        return Decision(False, "Only a supervisor can change the status")

    if privilege is Privilege.SUPERVISOR:
        return _ALLOW

    if operation is Operation.READ:
        if resource is None:
            return Decision(False, "Nothing to read")
        if resource.status is ContentStatus.APPROVED:
            return _ALLOW
        if privilege is Privilege.AUTHOR and resource.owned:
            return _ALLOW
        return Decision(False, "Content is not approved")

    if operation is Operation.CREATE:
        if privilege is Privilege.AUTHOR:
            return _ALLOW
        return Decision(False, "Only authors can create content")

    if operation in _MUTATIONS and privilege is Privilege.AUTHOR:
        if resource is None:
            return Decision(False, "Nothing to modify")
        if not resource.owned:
            return Decision(False, "Cannot modify another user's content")
        if resource.status is ContentStatus.APPROVED:
            return Decision(False, "Approved content is frozen for its author")
        return _ALLOW

    return Decision(False, "Access denied")


def require(
    role: Role,
    operation: Operation,
    resource: ResourceView | None = None,
) -> None:
    """Raise :class:`PermissionDenied` unless the operation is allowed."""
    decision = can_perform(role, operation, resource)
    if not decision:
        raise PermissionDenied(decision.reason)
