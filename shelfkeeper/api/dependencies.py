"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- Database sessions
- Authentication (current principal)
- Owner-bound repositories
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from ..auth.gate import AuthorizationGate
from ..auth.service import AuthService
from ..config import Settings, get_settings
from ..storage.book_repository import OwnedBookRepository
from ..storage.genre_repository import GenreRepository


AUTH_COOKIE_NAME = "auth-token"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


# =============================================================================
# Database
# =============================================================================

# Global engine and session factory (initialized in lifespan)
_engine = None
_async_session_factory = None


def init_database(settings: Settings) -> None:
    """Initialize database engine and session factory."""
    global _engine, _async_session_factory

    _engine = create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
    )

    _async_session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def dispose_database() -> None:
    """Close pooled connections on shutdown."""
    global _engine, _async_session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_factory = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.

    The session commits after the handler returns and rolls back on any
    exception, cancellation included.

    Yields:
        AsyncSession for database operations.
    """
    if _async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database first.")

    async with _async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create database tables and seed the system genres."""
    from ..storage.models import Base
    if _engine is None:
        raise RuntimeError("Database not initialized.")

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with _async_session_factory() as session:
        await GenreRepository(session).seed_system_genres()
        await session.commit()


# =============================================================================
# Authentication Dependencies
# =============================================================================

def get_authorization_gate(settings: Settings = Depends(get_settings)) -> AuthorizationGate:
    """Dependency for the authorization gate."""
    return AuthorizationGate(settings)


async def get_credential(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
) -> Optional[str]:
    """
    Extract the session token.

    The Authorization header wins; the auth cookie is the fallback for
    browser clients.
    """
    if bearer:
        return bearer
    return request.cookies.get(AUTH_COOKIE_NAME)


async def get_current_principal(
    request: Request,
    credential: Optional[str] = Depends(get_credential),
    gate: AuthorizationGate = Depends(get_authorization_gate),
) -> str:
    """
    Resolve the caller's principal id.

    Raises:
        AuthenticationError: Missing, malformed or expired credential.
    """
    principal_id = gate.resolve_identity(credential)
    request.state.principal_id = principal_id
    return principal_id


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    """Dependency for registration and login."""
    return AuthService(db, settings)


# =============================================================================
# Repository Dependencies
# =============================================================================

def get_owned_book_repository(
    principal_id: str = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> OwnedBookRepository:
    """Book repository bound to the current principal."""
    return OwnedBookRepository(db, principal_id)


def get_genre_repository(
    db: AsyncSession = Depends(get_db),
) -> GenreRepository:
    """Dependency for genre repository."""
    return GenreRepository(db)


# =============================================================================
# Request Context Dependencies
# =============================================================================

async def get_client_ip(request: Request) -> str:
    """Extract client IP from request, considering proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"
