"""
User administration router.

Endpoints:
  GET   /api/users               — List all users          [admin]
  GET   /api/users/{id}          — Get one user            [admin, or the user themself]
  PATCH /api/users/{id}/status   — Activate / deactivate   [admin]

Role gating uses require_roles(); the per-user read uses the ownership check
(field "id"), so a non-admin can read their own record but nobody else's.
Every route counts against the caller's /api request budget.
"""

from fastapi import APIRouter, Depends

from invoice_api.access_control import OwnershipRequirement, RequestIdentity
from invoice_api.dependencies import (
    check_resource_ownership,
    get_user_repository,
    require_roles,
)
from invoice_api.limiter import enforce_api_rate_limit
from invoice_api.models.user import UserRole
from invoice_api.repositories.user_repository import UserRepository
from invoice_api.schemas.user import (
    UserEnvelope,
    UserListEnvelope,
    UserResponse,
    UserStatusUpdateRequest,
)
from invoice_api.services import user_service

router = APIRouter(dependencies=[Depends(enforce_api_rate_limit)])

require_admin = require_roles(UserRole.ADMIN)


@router.get(
    "",
    response_model=UserListEnvelope,
    summary="[Admin] List all users",
)
async def list_users(
    admin: RequestIdentity = Depends(require_admin),
    repo: UserRepository = Depends(get_user_repository),
):
    users = await user_service.list_users(repo)
    return UserListEnvelope(
        data={
            "users": [UserResponse.model_validate(user) for user in users],
            "count": len(users),
        }
    )


@router.get(
    "/{user_id}",
    response_model=UserEnvelope,
    summary="Get a user (admin, or your own record)",
)
async def get_user(
    user_id: int,
    ownership: OwnershipRequirement = Depends(check_resource_ownership("id")),
    repo: UserRepository = Depends(get_user_repository),
):
    """
    Admins can read any user. Everyone else gets 403 FORBIDDEN_RESOURCE for
    any id but their own.
    """
    user = await user_service.get_user(repo, user_id)
    ownership.enforce(user)
    return UserEnvelope(data={"user": UserResponse.model_validate(user)})


@router.patch(
    "/{user_id}/status",
    response_model=UserEnvelope,
    summary="[Admin] Activate or deactivate a user",
)
async def set_user_status(
    user_id: int,
    body: UserStatusUpdateRequest,
    admin: RequestIdentity = Depends(require_admin),
    repo: UserRepository = Depends(get_user_repository),
):
    """
    Deactivation takes effect on the user's next request: the authentication
    dependency re-reads the user every time, so their outstanding tokens are
    rejected with 401 INVALID_USER from then on.
    """
    user = await user_service.set_user_active(repo, admin, user_id, body.is_active)
    return UserEnvelope(
        message="User activated" if user.is_active else "User deactivated",
        data={"user": UserResponse.model_validate(user)},
    )
