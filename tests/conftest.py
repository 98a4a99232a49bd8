"""
FormForge - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator

import pytest
from faker import Faker
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

# Set testing environment
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['JWT_SECRET'] = 'test-jwt-secret-key-for-testing'
os.environ['LOG_LEVEL'] = 'WARNING'

from app.main import app
from app.core.db import get_db
from app.core.security import create_access_token
from app.db.models import Base
from app.db.repositories.user_repository import UserRepository
from app.domains.identity.entities import User

fake = Faker()

TEST_PASSWORD = 'secret123'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
TestSessionLocal = sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory for users stored directly through the repository"""
    async def _make_user(is_admin: bool = False, name: str = None) -> User:
        user = User.create_user(
            name=name or fake.name(),
            email=fake.unique.email(),
            password=TEST_PASSWORD
        )
        user.is_admin = is_admin
        return await UserRepository(db_session).create(user)

    return _make_user


def _headers_for(user: User) -> dict:
    token = create_access_token({'sub': str(user.id), 'email': user.email, 'is_admin': user.is_admin})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def auth():
    """Authorization header factory"""
    return _headers_for


@pytest.fixture
async def creator(make_user) -> User:
    return await make_user(name='Template Creator')


@pytest.fixture
async def respondent(make_user) -> User:
    return await make_user(name='Alice')


@pytest.fixture
async def outsider(make_user) -> User:
    return await make_user()


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user(is_admin=True)


@pytest.fixture
def template_payload() -> dict:
    """Private template with one question of each user-fillable type"""
    return {
        'title': 'Course feedback',
        'description': 'Tell us **what** you think',
        'topic': 'Education',
        'is_public': False,
        'tags': ['course', 'feedback'],
        'fields': [
            {'type': 'single_line', 'label': 'Your group'},
            {'type': 'multi_line', 'label': 'Comments'},
            {'type': 'positive_integer', 'label': 'Score', 'required': True},
            {'type': 'checkbox', 'label': 'Would recommend'},
        ],
    }


@pytest.fixture
async def create_template(client: AsyncClient, creator: User, template_payload: dict):
    """Factory creating templates through the API as the creator"""
    async def _create(**overrides) -> dict:
        payload = {**template_payload, **overrides}
        response = await client.post('/templates/', json=payload, headers=_headers_for(creator))
        assert response.status_code == 201, response.text
        return response.json()

    return _create