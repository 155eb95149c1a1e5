"""
Auth Router - Account creation and sign-in, delegated to the identity provider
"""
from fastapi import APIRouter, Depends

from eventeye.dependencies import get_identity_service
from eventeye.errors import ValidationError
from eventeye.schemas.schemas import LoginRequest, SessionResponse, SignupRequest, UserResponse
from eventeye.services.identity_service import IdentityService

router = APIRouter()


@router.post("/signup", response_model=UserResponse)
async def signup(
    request: SignupRequest,
    identity: IdentityService = Depends(get_identity_service)
):
    """Create an account with the identity provider."""
    if not (request.name.strip() and request.email.strip() and request.password):
        raise ValidationError("Missing required fields")

    user = await identity.create_user(request.name.strip(), request.email.strip(), request.password)
    return UserResponse(user=user)


@router.post("/login", response_model=SessionResponse)
async def login(
    request: LoginRequest,
    identity: IdentityService = Depends(get_identity_service)
):
    """Exchange email and password for a session carrying the bearer token."""
    if not (request.email.strip() and request.password):
        raise ValidationError("Missing required fields")

    session = await identity.sign_in(request.email.strip(), request.password)
    return SessionResponse(session=session)
