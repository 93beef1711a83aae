from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from sqlalchemy import select
from starlette.middleware.sessions import SessionMiddleware

from hr_console.api.router import router
from hr_console.core.config import settings
from hr_console.core.logging import get_logger
from hr_console.core.security import hash_password
from hr_console.db.base import Base
from hr_console.db.session import engine, AsyncSessionLocal
from hr_console.models.user import User
from hr_console.models.user_role import UserRole, ROLE_ADMIN

import hr_console.models  # noqa: F401

log = get_logger(__name__)


async def seed_admin(db) -> None:
    email = settings.ADMIN_EMAIL.strip().lower()
    res = await db.execute(select(User).where(User.email == email))
    if res.scalar_one_or_none():
        return

    admin = User(
        email=email,
        password_hash=hash_password(settings.ADMIN_PASSWORD),
        created_at=datetime.now(timezone.utc),
    )
    admin.roles.append(UserRole(role=ROLE_ADMIN))
    db.add(admin)
    await db.commit()
    log.info("seeded admin account %s", email)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # MVP: create tables automatically. Later: Alembic migrations.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        await seed_admin(db)

    yield
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(title="HR Console", lifespan=lifespan)
    app.add_middleware(SessionMiddleware, secret_key=settings.APP_SECRET_KEY)
    app.include_router(router)
    return app


app = create_app()
