from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_console.api.endpoints.auth import require_login
from hr_console.api.templating import render
from hr_console.core.logging import get_logger
from hr_console.core.rbac import get_current_user, user_is_admin
from hr_console.db.persistence import Persistence
from hr_console.db.session import get_db

router = APIRouter()
log = get_logger(__name__)

STATS = (
    ("Total Employees", "employee", "/employees"),
    ("Departments", "department", "/departments"),
    ("Job Positions", "job", "/jobs"),
    ("Job Histories", "jobhistory", "/jobhistories"),
)


@router.get("/")
async def dashboard(request: Request, db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    user = await get_current_user(db, request.session)
    if user is None:
        # account was removed since sign-in
        request.session.clear()
        return RedirectResponse("/login", status_code=302)

    email, is_admin = user.email, await user_is_admin(db, user.id)

    store = Persistence(db)
    stats = []
    for title, table, link in STATS:
        try:
            value = await store.count(table)
        except SQLAlchemyError as exc:
            await store.rollback()
            log.error("count of %s failed: %s", table, exc)
            value = None
        stats.append({"title": title, "value": value, "link": link})

    return render(
        request,
        "dashboard.html",
        {"stats": stats, "email": email, "is_admin": is_admin},
    )


@router.get("/dashboard")
async def dashboard_alias():
    return RedirectResponse("/", status_code=302)
