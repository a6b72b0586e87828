"""
Pytest configuration and fixtures for Shelfkeeper tests.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from shelfkeeper.api.main import create_app
from shelfkeeper.api.dependencies import Settings, get_settings, get_db
from shelfkeeper.storage.genre_repository import GenreRepository
from shelfkeeper.storage.models import Base
from shelfkeeper.storage.user_repository import UserRepository


API = "/api/v1"
DEFAULT_PASSWORD = "correct-horse"


# =============================================================================
# Test Settings
# =============================================================================

def get_test_settings() -> Settings:
    """Return settings configured for testing."""
    return Settings(
        database_url="sqlite+aiosqlite://",
        database_echo=False,
        jwt_secret_key="test-secret",
        access_token_expire_minutes=30,
        lockout_max_attempts=5,
        lockout_minutes=15,
        max_upload_size_mb=1,
        environment="test",
        debug=True,
    )


@pytest.fixture
def test_settings() -> Settings:
    return get_test_settings()


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """In-memory database shared by every connection of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        await GenreRepository(session).seed_system_genres()
        await session.commit()

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(async_engine):
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Provide database session for tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def make_user(db_session):
    """Create users directly in the database."""
    from shelfkeeper.security import get_password_hash

    async def _make(email: str, password: str = DEFAULT_PASSWORD):
        user = await UserRepository(db_session).create(
            email=email,
            password_hash=get_password_hash(password),
            display_name=email.split("@")[0],
        )
        await db_session.commit()
        return user

    return _make


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def app(session_factory):
    """Create FastAPI application wired to the test database."""
    application = create_app(get_test_settings())

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    application.dependency_overrides[get_settings] = get_test_settings
    application.dependency_overrides[get_db] = override_get_db

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def register(client: AsyncClient, email: str, password: str = DEFAULT_PASSWORD) -> dict:
    """Register a user through the API and return bearer headers."""
    response = await client.post(
        f"{API}/auth/register",
        json={
            "email": email,
            "password": password,
            "confirm_password": password,
            "display_name": email.split("@")[0],
        },
    )
    assert response.status_code == 201, response.text
    # Keep requests explicit about who is calling
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def register_user(client):
    """Register users through the API; returns bearer headers."""
    async def _register(email: str, password: str = DEFAULT_PASSWORD) -> dict:
        return await register(client, email, password)

    return _register


@pytest_asyncio.fixture
async def alice_headers(client) -> dict:
    return await register(client, "alice@example.com")


@pytest_asyncio.fixture
async def bob_headers(client) -> dict:
    return await register(client, "bob@example.com")


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def sample_book_data() -> dict:
    """Sample book data for testing."""
    return {
        "title": "The Great Gatsby",
        "author": "F. Scott Fitzgerald",
        "genres": ["Fiction", "Classic"],
        "published_date": "1925-04-10",
        "rating": 5,
        "edition": "First Edition",
        "isbn": "9780743273565",
    }


@pytest.fixture
def sample_books_batch() -> list[dict]:
    """Batch of sample books for testing."""
    return [
        {
            "title": "1984",
            "author": "George Orwell",
            "genres": ["Fiction", "Dystopian"],
            "published_date": "1949",
            "rating": 5,
        },
        {
            "title": "To Kill a Mockingbird",
            "author": "Harper Lee",
            "genres": ["Fiction", "Classic"],
            "published_date": "July 1960",
            "rating": 4,
        },
        {
            "title": "Pride and Prejudice",
            "author": "Jane Austen",
            "genres": ["Romance", "Classic"],
            "published_date": "1813",
            "rating": 3,
        },
    ]
