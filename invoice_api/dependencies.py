"""
FastAPI dependencies for authentication and authorization.

Dependencies are reusable functions that FastAPI injects into route handlers.
They form a chain that enforces both authentication and access control:

  get_current_identity (Bearer JWT -> live User -> RequestIdentity)
      ├── require_roles(*roles)              [role membership]
      └── check_resource_ownership(field)    [admin bypass, else owner match]

Authentication states for a request:

  NoToken ──header present──> TokenPresent ──decode + load user──> Verified
     │                              │
     └── 401 NO_TOKEN               └── 403 INVALID_TOKEN / TOKEN_EXPIRED
                                        401 INVALID_USER

The user row is re-read on every request. Tokens carry no live status, so
this is what makes deactivating an account take effect immediately rather
than when the token expires.
"""

import logging

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_api.access_control import (
    OwnershipRequirement,
    RequestIdentity,
    check_roles,
    ownership_requirement,
)
from invoice_api.database import get_db
from invoice_api.exceptions import (
    InvalidTokenError,
    InvalidUserError,
    NoTokenError,
    TokenExpiredHTTPError,
)
from invoice_api.models.user import UserRole
from invoice_api.repositories.user_repository import (
    SqlAlchemyUserRepository,
    UserRepository,
)
from invoice_api.security import TokenError, TokenExpiredError, decode_access_token

logger = logging.getLogger("invoiceapi.auth")

# auto_error=False: a missing header must become our NO_TOKEN envelope,
# not FastAPI's default 403.
bearer_scheme = HTTPBearer(auto_error=False)


def get_user_repository(db: AsyncSession = Depends(get_db)) -> UserRepository:
    return SqlAlchemyUserRepository(db)


async def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    repo: UserRepository = Depends(get_user_repository),
) -> RequestIdentity:
    """
    Extract and verify the bearer token, then load the user it names.

    Returns:
        The RequestIdentity for this request (also stored on
        request.state.identity).

    Raises:
        NoTokenError: No "Authorization: Bearer ..." header.
        InvalidTokenError: Malformed token, bad signature, or a "sub" that
            isn't a user id.
        TokenExpiredHTTPError: The token has expired.
        InvalidUserError: The user no longer exists or is inactive.
    """
    if credentials is None or not credentials.credentials:
        raise NoTokenError()

    try:
        payload = decode_access_token(credentials.credentials)
    except TokenExpiredError:
        raise TokenExpiredHTTPError()
    except TokenError:
        raise InvalidTokenError()

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise InvalidTokenError()

    user = await repo.get_by_id(user_id)
    if user is None or not user.is_active:
        logger.info("Rejected token for missing or inactive user id=%s", user_id)
        raise InvalidUserError()

    identity = RequestIdentity(
        user_id=user.id,
        email=user.email,
        role=user.role,
        department=user.department,
    )
    request.state.identity = identity
    return identity


def require_roles(*roles: UserRole):
    """
    Dependency factory: the caller's role must be one of `roles`.

    Usage:
        @router.get("/reports", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """

    async def dependency(
        identity: RequestIdentity = Depends(get_current_identity),
    ) -> RequestIdentity:
        return check_roles(identity, roles)

    return dependency


def check_resource_ownership(field: str = "created_by"):
    """
    Dependency factory for creator-scoped resources.

    Admins get a requirement with required=False. Everyone else gets
    required=True, and the handler calls .enforce(resource) after loading it.
    """

    async def dependency(
        identity: RequestIdentity = Depends(get_current_identity),
    ) -> OwnershipRequirement:
        return ownership_requirement(identity, field)

    return dependency
