"""Auth Routes - registration and passwordless login.

Invariants:
    - Both endpoints return {token, user}; the token is reproducible per user
    - Unknown email on login -> 401
"""

from fastapi import APIRouter, Depends, status

from wealthlink.api.dependencies import get_identity_service
from wealthlink.core.dashboard import profile_view
from wealthlink.schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from wealthlink.services.identity_service import IdentityService

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post(
    "/register", response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    body: RegisterRequest,
    identity: IdentityService = Depends(get_identity_service),
):
    user, token = await identity.register(body.model_dump())
    return AuthResponse(token=token, user=profile_view(user))


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    identity: IdentityService = Depends(get_identity_service),
):
    user, token = await identity.login(body.email)
    return AuthResponse(token=token, user=profile_view(user))
