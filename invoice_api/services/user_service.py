"""
User administration service.

Admin-facing operations over the credential store:
  - list every user
  - fetch one user (the router applies the admin-or-self ownership check)
  - activate / deactivate an account

Deactivation is the only way to remove a user. Because the authentication
dependency re-reads the user on every request, a deactivated user's
outstanding tokens stop working on their very next call.
"""

import logging

from invoice_api.access_control import RequestIdentity
from invoice_api.exceptions import SelfDeactivationError, UserNotFoundError
from invoice_api.models.user import User
from invoice_api.repositories.user_repository import UserRepository

logger = logging.getLogger("invoiceapi.users")


async def list_users(repo: UserRepository) -> list[User]:
    return await repo.list_all()


async def get_user(repo: UserRepository, user_id: int) -> User:
    user = await repo.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError()
    return user


async def set_user_active(
    repo: UserRepository,
    admin: RequestIdentity,
    user_id: int,
    is_active: bool,
) -> User:
    """
    Activate or deactivate a user.

    Raises:
        SelfDeactivationError: An admin tried to deactivate themself.
        UserNotFoundError: No user with that id.
    """
    if user_id == admin.user_id and not is_active:
        raise SelfDeactivationError()

    user = await get_user(repo, user_id)
    user.is_active = is_active
    user = await repo.save(user)

    logger.info(
        "User %s %s by %s",
        user.email,
        "activated" if is_active else "deactivated",
        admin.email,
    )
    return user
