"""
Role- and ownership-based access decisions.

Everything here is pure: no database, no HTTP. The functions take the
RequestIdentity produced by the authentication dependency and answer
"may this caller do this?".

Two checks, composable:

  Role check
    check_roles(identity, {ADMIN, ACCOUNTANT}) passes if the caller's role is
    in the set. There is no hierarchy: ADMIN does not implicitly satisfy a
    requirement of {VIEWER}.

  Ownership check
    ownership_requirement(identity, "created_by") returns an
    OwnershipRequirement. For admins it is not required at all; for anyone
    else the handler must call .enforce(resource) once it has loaded the
    resource, because only the handler knows the resource's schema.

authorize() folds both into a single decision for callers that already have
the owner id in hand.

Evaluating any check without an identity raises NotAuthenticatedError.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from invoice_api.exceptions import (
    InsufficientPermissionsError,
    NotAuthenticatedError,
    ResourceAccessError,
)
from invoice_api.models.user import Department, UserRole


@dataclass(frozen=True)
class RequestIdentity:
    """The authenticated caller, valid for one request only."""
    user_id: int
    email: str
    role: UserRole
    department: Department

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def _require_identity(identity: RequestIdentity | None) -> RequestIdentity:
    if identity is None:
        raise NotAuthenticatedError()
    return identity


def check_roles(
    identity: RequestIdentity | None, required_roles: Iterable[UserRole]
) -> RequestIdentity:
    """Raise unless the caller's role is one of required_roles."""
    identity = _require_identity(identity)
    roles = [UserRole(role) for role in required_roles]
    if identity.role not in roles:
        raise InsufficientPermissionsError(
            required_roles=[role.value for role in roles],
            current_role=identity.role.value,
        )
    return identity


@dataclass(frozen=True)
class OwnershipRequirement:
    """
    Result of the gate half of the ownership check.

    required is False for admins. Otherwise the handler compares
    getattr(resource, field) against the caller's user id.
    """
    identity: RequestIdentity
    required: bool
    field: str = "created_by"

    def permits(self, resource) -> bool:
        if not self.required:
            return True
        return getattr(resource, self.field, None) == self.identity.user_id

    def enforce(self, resource):
        if not self.permits(resource):
            raise ResourceAccessError()
        return resource


def ownership_requirement(
    identity: RequestIdentity | None, field: str = "created_by"
) -> OwnershipRequirement:
    identity = _require_identity(identity)
    return OwnershipRequirement(
        identity=identity,
        required=not identity.is_admin,
        field=field,
    )


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


def authorize(
    identity: RequestIdentity | None,
    resource_owner_id: int | None = None,
    required_roles: Iterable[UserRole] | None = None,
) -> AccessDecision:
    """
    Decide in one call whether identity may act on a resource.

    Order: authenticated? → role in required_roles (if given) → admin bypass →
    owner match (if an owner id is given).
    """
    if identity is None:
        return AccessDecision(False, NotAuthenticatedError.code)

    if required_roles is not None:
        if identity.role not in [UserRole(role) for role in required_roles]:
            return AccessDecision(False, InsufficientPermissionsError.code)

    if identity.is_admin:
        return AccessDecision(True, "ADMIN")

    if resource_owner_id is not None and resource_owner_id != identity.user_id:
        return AccessDecision(False, ResourceAccessError.code)

    return AccessDecision(True, "OWNER" if resource_owner_id is not None else "ROLE")


def assert_authorized(
    identity: RequestIdentity | None,
    resource_owner_id: int | None = None,
    required_roles: Iterable[UserRole] | None = None,
) -> RequestIdentity:
    """Like authorize(), but raises the matching error on a denial."""
    decision = authorize(identity, resource_owner_id, required_roles)
    if decision.allowed:
        return identity
    if decision.reason == NotAuthenticatedError.code:
        raise NotAuthenticatedError()
    if decision.reason == InsufficientPermissionsError.code:
        check_roles(identity, required_roles)
    raise ResourceAccessError()
