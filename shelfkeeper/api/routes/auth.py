"""
Authentication API Routes for Shelfkeeper.

Handles:
- User registration
- Login (JSON and OAuth2 password form)
- Logout (clears the auth cookie)
- Current user retrieval
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from shelfkeeper.api.dependencies import (
    AUTH_COOKIE_NAME,
    get_auth_service,
    get_client_ip,
    get_current_principal,
    get_db,
    get_settings,
)
from shelfkeeper.api.schemas import (
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    RegisterRequest,
    Token,
    UserResponse,
)
from shelfkeeper.auth.service import AuthService, IssuedToken
from shelfkeeper.config import Settings
from shelfkeeper.errors import MalformedCredential
from shelfkeeper.storage.user_repository import UserRepository

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(issued: IssuedToken) -> AuthResponse:
    return AuthResponse(
        token=issued.token,
        user_id=issued.user.id,
        email=issued.user.email,
        display_name=issued.user.display_name,
        expires_at=issued.expires_at,
    )


def _set_auth_cookie(response: Response, issued: IssuedToken, settings: Settings) -> None:
    response.set_cookie(
        AUTH_COOKIE_NAME,
        issued.token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.environment == "production",
        samesite="lax",
    )


# --- Endpoints ---

@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
    },
)
async def register(
    request: RegisterRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
):
    """Register a new user and sign them in."""
    issued = await service.register(
        email=request.email,
        password=request.password,
        display_name=request.display_name,
    )
    _set_auth_cookie(response, issued, settings)
    return _auth_response(issued)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Incorrect email or password"},
        423: {"model": ErrorResponse, "description": "Account temporarily locked"},
    },
)
async def login(
    request: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_settings),
    client_ip: str = Depends(get_client_ip),
):
    """
    Login endpoint.
    Returns a JWT if credentials are valid and the account is not locked.
    """
    logger.info(f"Login attempt from {client_ip}")
    issued = await service.authenticate(request.email, request.password)
    _set_auth_cookie(response, issued, settings)
    return _auth_response(issued)


@router.post("/token", response_model=Token)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    service: AuthService = Depends(get_auth_service),
):
    """
    OAuth2 password flow for the interactive docs.
    The username field carries the email.
    """
    issued = await service.authenticate(form_data.username, form_data.password)
    return Token(access_token=issued.token)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response):
    """Clear the auth cookie. Bearer tokens are simply discarded by the client."""
    response.delete_cookie(AUTH_COOKIE_NAME)
    response.status_code = status.HTTP_204_NO_CONTENT
    return response


@router.get("/me", response_model=UserResponse)
async def read_users_me(
    principal_id: str = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Get current user profile."""
    user = await UserRepository(db).get(principal_id)
    if user is None:
        # Token signed for an account that no longer exists
        raise MalformedCredential("Unknown subject")
    return UserResponse.model_validate(user)
