"""
Authentication router — registration, login, and self-service profile.

Endpoints:
  POST /api/auth/register         — Register and get a token      (public, rate-limited)
  POST /api/auth/login            — Authenticate and get a token  (public, rate-limited)
  GET  /api/auth/profile          — Current user's profile        (bearer token)
  PUT  /api/auth/profile          — Update name / department      (bearer token)
  PUT  /api/auth/change-password  — Change password               (bearer token)

Register and login share one budget of AUTH_RATE_LIMIT attempts per client
IP (default 5 per 15 minutes) to slow down credential stuffing. Every route
here also counts against the /api budget.

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before any database operation and never logged.
  - JWT tokens appear only in response bodies.
  - Responses are built from UserResponse, which has no password field.
"""

from fastapi import APIRouter, Depends, Request, status

from invoice_api.access_control import RequestIdentity
from invoice_api.config import settings
from invoice_api.dependencies import get_current_identity, get_user_repository
from invoice_api.limiter import enforce_api_rate_limit, limiter
from invoice_api.repositories.user_repository import UserRepository
from invoice_api.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    ProfileUpdateRequest,
    RegisterRequest,
)
from invoice_api.schemas.user import UserEnvelope, UserResponse
from invoice_api.services import auth_service

router = APIRouter(dependencies=[Depends(enforce_api_rate_limit)])


def _auth_response(message: str, user, token: str) -> AuthResponse:
    return AuthResponse(
        message=message,
        data={"user": UserResponse.model_validate(user), "token": token},
    )


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
@limiter.shared_limit(settings.AUTH_RATE_LIMIT, scope="auth")
async def register(
    request: Request,
    body: RegisterRequest,
    repo: UserRepository = Depends(get_user_repository),
):
    """
    Register a new user and log them in.

    - **name**: 2-100 characters
    - **email**: Valid format, not already registered (case-insensitive)
    - **password**: At least PASSWORD_MIN_LENGTH (6) characters
    - **role**: admin / accountant / viewer (default viewer)
    - **department**: finance / sales / operations / management
    """
    user, token = await auth_service.register(
        repo,
        name=body.name,
        email=body.email,
        password=body.password,
        department=body.department,
        role=body.role,
    )
    return _auth_response("User registered successfully", user, token)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate and get a token",
)
@limiter.shared_limit(settings.AUTH_RATE_LIMIT, scope="auth")
async def login(
    request: Request,
    body: LoginRequest,
    repo: UserRepository = Depends(get_user_repository),
):
    """
    Authenticate with email and password.

    Returns a JWT bearer token that must be included in the Authorization
    header for all protected requests:

        Authorization: Bearer <token>

    The token expires after ACCESS_TOKEN_EXPIRE_MINUTES (default: 60).
    """
    user, token = await auth_service.login(repo, body.email, body.password)
    return _auth_response("Login successful", user, token)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/profile",
    response_model=UserEnvelope,
    summary="Get current user's profile",
)
async def get_profile(
    identity: RequestIdentity = Depends(get_current_identity),
    repo: UserRepository = Depends(get_user_repository),
):
    user = await auth_service.get_profile(repo, identity)
    return UserEnvelope(data={"user": UserResponse.model_validate(user)})


@router.put(
    "/profile",
    response_model=UserEnvelope,
    summary="Update name and/or department",
)
async def update_profile(
    body: ProfileUpdateRequest,
    identity: RequestIdentity = Depends(get_current_identity),
    repo: UserRepository = Depends(get_user_repository),
):
    """
    Update the caller's profile.

    Only name and department can be changed here. Other fields in the body
    are ignored — role, email and active status are not self-service.
    """
    user = await auth_service.update_profile(
        repo, identity, body.model_dump(exclude_unset=True)
    )
    return UserEnvelope(
        message="Profile updated successfully",
        data={"user": UserResponse.model_validate(user)},
    )


@router.put(
    "/change-password",
    response_model=MessageResponse,
    summary="Change password",
)
async def change_password(
    body: ChangePasswordRequest,
    identity: RequestIdentity = Depends(get_current_identity),
    repo: UserRepository = Depends(get_user_repository),
):
    """
    Change the caller's password. The current password must be supplied
    and correct; existing tokens remain valid until they expire.
    """
    await auth_service.change_password(
        repo, identity, body.current_password, body.new_password
    )
    return MessageResponse(message="Password changed successfully")
