# tests/conftest.py
import os

# must be set before hr_console is imported: the app engine is built at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_SECRET_KEY", "test-secret")

from datetime import date, datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import hr_console.models  # noqa: F401
from hr_console.core.security import hash_password
from hr_console.db.base import Base
from hr_console.db.persistence import Persistence
from hr_console.db.session import enable_sqlite_foreign_keys, get_db
from hr_console.main import create_app
from hr_console.models.user import User
from hr_console.models.user_role import UserRole, ROLE_ADMIN

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "secret-pass"

JOBS = [
    {"jobcode": "DEV", "jobdesc": "Developer"},
    {"jobcode": "SR_DEV", "jobdesc": "Senior Developer"},
    {"jobcode": "MGR", "jobdesc": "Manager"},
]
DEPARTMENTS = [
    {"deptcode": "ENG", "deptname": "Engineering"},
    {"deptcode": "OPS", "deptname": "Operations"},
]


@pytest.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(eng)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def persistence(db):
    return Persistence(db)


@pytest.fixture
async def reference_rows(persistence):
    await persistence.insert("job", JOBS)
    await persistence.insert("department", DEPARTMENTS)
    await persistence.commit()


async def make_employee(persistence: Persistence, empno: str, **fields) -> dict:
    row = {
        "empno": empno,
        "firstname": fields.get("firstname", "Ada"),
        "lastname": fields.get("lastname", "Lovelace"),
        "gender": fields.get("gender", "F"),
        "birthdate": fields.get("birthdate"),
        "hiredate": fields.get("hiredate", date(2020, 1, 6)),
        "sepdate": fields.get("sepdate"),
    }
    await persistence.insert("employee", [row])
    await persistence.commit()
    return row


@pytest.fixture
async def admin_user(session_factory):
    async with session_factory() as session:
        user = User(
            email=ADMIN_EMAIL,
            password_hash=hash_password(ADMIN_PASSWORD),
            created_at=datetime.now(timezone.utc),
        )
        user.roles.append(UserRole(role=ROLE_ADMIN))
        session.add(user)
        await session.commit()
        return user.id


@pytest.fixture
async def client(session_factory):
    app = create_app()

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as c:
        yield c


@pytest.fixture
async def signed_in(client, admin_user):
    res = await client.post("/login", data={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert res.status_code == 302
    return client
