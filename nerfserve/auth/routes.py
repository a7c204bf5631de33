"""Authentication routes: registration and login."""

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field

from nerfserve.auth.crypto import create_access_token
from nerfserve.config import settings
from nerfserve.logging_config import logger
from nerfserve.ratelimit import limiter
from nerfserve.services import ClientService, get_client_service

router = APIRouter()


# Request/Response models
class SignUpRequest(BaseModel):
    """User registration request."""

    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")


class SignInRequest(BaseModel):
    """User login request."""

    username: str
    password: str


class AuthResponse(BaseModel):
    """Authentication response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: str


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_auth)
async def register(
    request: Request,
    body: SignUpRequest,
    service: ClientService = Depends(get_client_service),
):
    """Register a new user with username and password.

    Raises:
        UsernameTaken: If the username is already registered (409)
    """
    await service.register_user(body.username, body.password)
    logger.info("User registered successfully", username=body.username)
    return MessageResponse(message="User registered")


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.rate_limit_auth)
async def login(
    request: Request,
    body: SignInRequest,
    service: ClientService = Depends(get_client_service),
):
    """Login with username and password and receive a bearer token.

    Raises:
        AuthenticationFailed: If the credentials are invalid (401)
    """
    user_id = await service.login_user(body.username, body.password)
    logger.info("User logged in successfully", user_id=user_id)

    return AuthResponse(
        access_token=create_access_token(user_id),
        token_type="bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user_id=user_id,
    )
