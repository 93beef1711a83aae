from fastapi import APIRouter, Depends, Request, Form
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_console.api.endpoints.auth import require_login
from hr_console.api.templating import matches, render
from hr_console.core.logging import get_logger
from hr_console.core.notify import SessionNotifier, error_text
from hr_console.core.rbac import user_is_admin
from hr_console.db.persistence import Persistence
from hr_console.db.session import get_db

router = APIRouter()
log = get_logger(__name__)


@router.get("")
async def list_departments(request: Request, q: str = "", db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    rows = await Persistence(db).select_all("department", order_by="deptname")
    items = [r for r in rows if matches(q, r["deptcode"], r["deptname"])]
    return render(
        request,
        "departments.html",
        {
            "items": items,
            "q": q,
            "is_admin": await user_is_admin(db, require_login(request)),
        },
    )


@router.post("/new")
async def create_department(
    request: Request,
    deptcode: str = Form(...),
    deptname: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    notifier = SessionNotifier(request.session)
    code = deptcode.strip()
    if not code:
        notifier.error("Failed to add department", "Department code is required")
        return RedirectResponse("/departments", status_code=302)

    store = Persistence(db)
    try:
        await store.insert("department", [{"deptcode": code, "deptname": deptname.strip() or None}])
        await store.commit()
    except SQLAlchemyError as exc:
        await store.rollback()
        log.error("department %s not created: %s", code, exc)
        notifier.error("Failed to add department", error_text(exc))
        return RedirectResponse("/departments", status_code=302)

    notifier.success("Department Added", f"Department {code} has been added")
    return RedirectResponse("/departments", status_code=302)


@router.post("/{deptcode}/edit")
async def update_department(
    request: Request,
    deptcode: str,
    deptname: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    notifier = SessionNotifier(request.session)
    store = Persistence(db)
    try:
        updated = await store.update("department", {"deptcode": deptcode}, {"deptname": deptname.strip() or None})
        await store.commit()
    except SQLAlchemyError as exc:
        await store.rollback()
        log.error("department %s not updated: %s", deptcode, exc)
        notifier.error("Failed to update department", error_text(exc))
        return RedirectResponse("/departments", status_code=302)

    if not updated:
        notifier.error("Failed to update department", f"Department {deptcode} not found")
    else:
        notifier.success("Department Updated", f"Department {deptcode} has been updated")
    return RedirectResponse("/departments", status_code=302)


@router.post("/{deptcode}/delete")
async def delete_department(request: Request, deptcode: str, db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    notifier = SessionNotifier(request.session)
    store = Persistence(db)
    try:
        await store.delete("department", {"deptcode": deptcode})
        await store.commit()
    except SQLAlchemyError as exc:
        # still referenced by job history rows
        await store.rollback()
        log.error("department %s not deleted: %s", deptcode, exc)
        notifier.error("Failed to delete department", error_text(exc))
        return RedirectResponse("/departments", status_code=302)

    notifier.success("Department deleted", "The department has been deleted successfully.")
    return RedirectResponse("/departments", status_code=302)
