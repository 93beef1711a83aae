from fastapi import APIRouter, Depends, Request, Form
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_console.api.staged_forms import discard_all_forms
from hr_console.api.templating import render
from hr_console.core.logging import get_logger
from hr_console.core.security import verify_password
from hr_console.db.session import get_db
from hr_console.models.user import User

router = APIRouter()
log = get_logger(__name__)


def require_login(request: Request):
    return request.session.get("user_id")


@router.get("/login")
async def login_page(request: Request):
    return render(request, "login.html", {"hide_nav": True, "error": None})


@router.post("/login")
async def login_action(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    db: AsyncSession = Depends(get_db),
):
    q = await db.execute(select(User).where(User.email == email.strip().lower()))
    user = q.scalar_one_or_none()

    if not user or not verify_password(password, user.password_hash):
        log.info("failed sign-in for %s", email)
        return render(
            request,
            "login.html",
            {"hide_nav": True, "error": "Invalid email or password"},
            status_code=401,
        )

    request.session["user_id"] = user.id
    return RedirectResponse(url="/", status_code=302)


@router.get("/logout")
async def logout(request: Request, db: AsyncSession = Depends(get_db)):
    await discard_all_forms(db, request.session)
    request.session.clear()
    return RedirectResponse(url="/login", status_code=302)
