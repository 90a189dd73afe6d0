import uuid
from collections.abc import AsyncGenerator
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from lexlink.common.enums import ActorRole, PricingMode, ProviderType, UserRole
from lexlink.core.engagement.schemas import Actor
from lexlink.db.base import Base
from lexlink.db.models import *  # noqa: F401,F403 - ensure all models loaded

# In-memory SQLite, one database per test
TEST_DATABASE_URL = "sqlite+aiosqlite://"

BUCHAREST = (44.4268, 26.1025)
CLUJ = (46.7712, 23.6236)


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session):
    from lexlink.api.deps import get_db
    from lexlink.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    from lexlink.db.models.user import User

    async def _make(role: UserRole = UserRole.CLIENT, country: str | None = None, **kwargs):
        user = User(
            id=uuid.uuid4(),
            email=f"{role.value}_{uuid.uuid4().hex[:8]}@test.com",
            full_name=kwargs.pop("full_name", f"Test {role.value.capitalize()}"),
            role=role.value,
            country=country,
            **kwargs,
        )
        db_session.add(user)
        await db_session.flush()
        await db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_provider(db_session, make_user):
    """Create a provider user with a profile, optional location and priced services."""
    from lexlink.db.models.provider import ProviderProfile, ProviderService, Specialization

    async def _make(
        provider_type: ProviderType = ProviderType.NOTARY,
        location: tuple[float, float] | None = BUCHAREST,
        service_radius_m: int | None = 10_000,
        rating: float = 0.0,
        review_count: int = 0,
        specializations: tuple[str, ...] = (),
        prices: tuple[int, ...] = (15000,),
        full_name: str | None = None,
    ):
        user = await make_user(UserRole.PROVIDER, full_name=full_name or f"Provider {uuid.uuid4().hex[:4]}")
        profile = ProviderProfile(
            user=user,
            provider_type=provider_type.value,
            latitude=location[0] if location else None,
            longitude=location[1] if location else None,
            service_radius_m=service_radius_m,
            rating=rating,
            review_count=review_count,
            specializations=[Specialization(name=name) for name in specializations],
            services=[
                ProviderService(title=f"Service {i}", pricing_mode=PricingMode.FIXED.value, price=price, position=i)
                for i, price in enumerate(prices)
            ],
        )
        db_session.add(profile)
        await db_session.flush()
        return profile

    return _make


@pytest.fixture
async def client_user(make_user):
    return await make_user(UserRole.CLIENT, country="RO")


@pytest.fixture
async def other_client_user(make_user):
    return await make_user(UserRole.CLIENT)


@pytest.fixture
async def admin_user(make_user):
    return await make_user(UserRole.ADMIN)


@pytest.fixture
async def provider_profile(make_provider):
    return await make_provider()


def headers_for(user) -> dict[str, str]:
    return {"X-User-Id": str(user.id)}


def actor_for(user) -> Actor:
    return Actor(user_id=user.id, role=ActorRole(user.role))


@pytest.fixture
def auth_headers(client_user):
    return headers_for(client_user)


@pytest.fixture
def provider_headers(provider_profile):
    return {"X-User-Id": str(provider_profile.user_id)}


@pytest.fixture
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture(autouse=True)
def mock_celery_tasks():
    """Mock all Celery task.delay() calls to prevent actual task execution in tests."""
    with patch("lexlink.tasks.notification_tasks.dispatch_side_effects.delay") as dispatch:
        yield dispatch
