"""
Authentication service — register, login, and self-service profile logic.

This module contains the core auth logic, separated from HTTP concerns.
The router calls these functions and translates the results into HTTP
responses. Every function takes a UserRepository, so it can be tested
without a web server (and without SQLAlchemy, given a fake repository).

Register flow:
  1. Reject if the email is already registered
  2. Hash the password (an explicit step here, not an ORM hook)
  3. Insert the user; the unique constraint settles any race
  4. Return a JWT so the user is immediately logged in

Login flow:
  1. Require both email and password
  2. Look up the user by lowercased email
  3. Reject deactivated accounts
  4. Verify the password (against a dummy hash if the email is unknown)
  5. Return a JWT

Security notes:
  - "Unknown email" and "wrong password" raise the same error, with the same
    message, to prevent user enumeration
  - A deactivated account is rejected with AccountInactiveError whatever
    password is supplied, so no password is ever checked against it
  - Passwords and tokens are never logged
"""

import logging

from invoice_api.access_control import RequestIdentity
from invoice_api.config import settings
from invoice_api.exceptions import (
    AccountInactiveError,
    InvalidCredentialsError,
    InvalidPasswordError,
    MissingCredentialsError,
    MissingPasswordsError,
    NoUpdatesError,
    UserExistsError,
    UserNotFoundError,
    WeakPasswordError,
)
from invoice_api.models.user import Department, User, UserRole
from invoice_api.repositories.user_repository import UserRepository
from invoice_api.security import (
    DUMMY_PASSWORD_HASH,
    hash_password,
    issue_token_for,
    verify_password,
)

logger = logging.getLogger("invoiceapi.auth")

# Fields a user may change on their own profile. Everything else is ignored.
ALLOWED_PROFILE_FIELDS = ("name", "department")


async def register(
    repo: UserRepository,
    name: str,
    email: str,
    password: str,
    department: Department | str,
    role: UserRole | str | None = None,
) -> tuple[User, str]:
    """
    Register a new user.

    Args:
        repo: Credential store.
        name: Display name.
        email: Login email (normalized to lowercase before storage).
        password: Plaintext password (hashed before storage).
        department: One of the Department values.
        role: One of the UserRole values; VIEWER when omitted.

    Returns:
        Tuple of (User instance, JWT token string).

    Raises:
        UserExistsError: If the email is already registered.
        DuplicateError: If a concurrent registration claimed the email first.
        WeakPasswordError: If the password is shorter than the minimum.
    """
    if await repo.get_by_email(email) is not None:
        raise UserExistsError()

    user = User(
        name=name,
        email=email,
        hashed_password=hash_password(password),
        role=role or UserRole.VIEWER,
        department=department,
        is_active=True,
    )
    user = await repo.add(user)

    token = issue_token_for(user)
    logger.info("User registered: %s", user.email)
    return user, token


async def login(
    repo: UserRepository,
    email: str | None,
    password: str | None,
) -> tuple[User, str]:
    """
    Authenticate a user and return a JWT token.

    Raises:
        MissingCredentialsError: Email or password not supplied.
        InvalidCredentialsError: Unknown email or wrong password.
        AccountInactiveError: The account has been deactivated.
    """
    if not email or not email.strip() or not password:
        raise MissingCredentialsError()

    user = await repo.get_by_email(email)

    if user is None:
        # Burn the same hashing time as a real check
        verify_password(password, DUMMY_PASSWORD_HASH)
        logger.info("Failed login for unknown email")
        raise InvalidCredentialsError()

    if not user.is_active:
        logger.info("Login refused for inactive user id=%s", user.id)
        raise AccountInactiveError()

    if not verify_password(password, user.hashed_password):
        logger.info("Failed login for user id=%s", user.id)
        raise InvalidCredentialsError()

    token = issue_token_for(user)
    logger.info("User logged in: %s", user.email)
    return user, token


async def get_profile(repo: UserRepository, identity: RequestIdentity) -> User:
    user = await repo.get_by_id(identity.user_id)
    if user is None:
        raise UserNotFoundError()
    return user


async def update_profile(
    repo: UserRepository,
    identity: RequestIdentity,
    updates: dict,
) -> User:
    """
    Apply a profile update restricted to ALLOWED_PROFILE_FIELDS.

    Unknown keys (role, email, is_active, ...) are silently dropped, and so
    are None values.

    Raises:
        NoUpdatesError: Nothing allowed was left to apply.
        UserNotFoundError: The user row no longer exists.
    """
    allowed = {
        field: updates[field]
        for field in ALLOWED_PROFILE_FIELDS
        if updates.get(field) is not None
    }
    if not allowed:
        raise NoUpdatesError()

    user = await get_profile(repo, identity)
    for field, value in allowed.items():
        setattr(user, field, value)
    user = await repo.save(user)

    logger.info("Profile updated: %s (%s)", user.email, ", ".join(sorted(allowed)))
    return user


async def change_password(
    repo: UserRepository,
    identity: RequestIdentity,
    current_password: str | None,
    new_password: str | None,
) -> None:
    """
    Replace the user's password after re-verifying the current one.

    Raises:
        MissingPasswordsError: Either password not supplied.
        WeakPasswordError: New password shorter than the minimum.
        UserNotFoundError: The user row no longer exists.
        InvalidPasswordError: Current password is wrong.
    """
    if not current_password or not new_password:
        raise MissingPasswordsError()

    if len(new_password) < settings.PASSWORD_MIN_LENGTH:
        raise WeakPasswordError(settings.PASSWORD_MIN_LENGTH)

    user = await get_profile(repo, identity)

    if not verify_password(current_password, user.hashed_password):
        raise InvalidPasswordError()

    user.hashed_password = hash_password(new_password)
    await repo.save(user)
    logger.info("Password changed: %s", user.email)
