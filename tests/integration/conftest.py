import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_unit_of_work
from src.domain.entities import Tenant, User, UserRole
from src.domain.passwords import hash_password
from tests.fixtures.helpers import ADMIN_API_KEY, PASSWORD
from tests.fixtures.json_loader import TestDataLoader


PASSWORD_HASH = hash_password(PASSWORD)


class IntegrationConfig(ApplicationConfig):
    CACHE_BACKEND = "memory"
    SESSION_PRUNE_INTERVAL_MINUTES = 0
    ADMIN_API_KEY = ADMIN_API_KEY
    JWT_ACCESS_SECRET = "integration-access-secret"
    JWT_SESSION_SECRET = "integration-session-secret"
    ROTATE_SESSION_ON_REFRESH = True


@pytest_asyncio.fixture
def test_data():
    return TestDataLoader()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///./test.db")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with Session() as session:
        yield session


@pytest_asyncio.fixture
async def seeded(db_session, test_data):
    """
    Tenants and users from test_data.json, all with PASSWORD.

    Returns plain values (ids and emails) so tests never touch ORM
    instances the requests may have expired.
    """
    tenants = {}
    for key, values in test_data.get("tenants").items():
        tenant = Tenant(name=values["name"])
        db_session.add(tenant)
        tenants[key] = tenant

    users = {}
    for key, values in test_data.get("users").items():
        user = User(
            email=values["email"],
            password_hash=PASSWORD_HASH,
            role=UserRole(values["role"]),
            tenant_id=tenants[values["tenant"]].id,
        )
        db_session.add(user)
        users[key] = user

    await db_session.commit()

    return {
        "tenants": {key: tenant.id for key, tenant in tenants.items()},
        "users": {
            key: {"id": user.id, "email": user.email, "tenant_id": user.tenant_id}
            for key, user in users.items()
        },
    }


@pytest_asyncio.fixture
async def app(db_session):
    from src.api.app import create_app

    app = create_app(IntegrationConfig)

    async def override_get_unit_of_work():
        yield SqlAlchemyUnitOfWork(db_session)

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
