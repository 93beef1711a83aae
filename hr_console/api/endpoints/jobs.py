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
async def list_jobs(request: Request, q: str = "", db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    rows = await Persistence(db).select_all("job", order_by="jobdesc")
    items = [r for r in rows if matches(q, r["jobcode"], r["jobdesc"])]
    return render(
        request,
        "jobs.html",
        {
            "items": items,
            "q": q,
            "is_admin": await user_is_admin(db, require_login(request)),
        },
    )


@router.post("/new")
async def create_job(
    request: Request,
    jobcode: str = Form(...),
    jobdesc: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    notifier = SessionNotifier(request.session)
    code = jobcode.strip()
    if not code:
        notifier.error("Failed to add job", "Job code is required")
        return RedirectResponse("/jobs", status_code=302)

    store = Persistence(db)
    try:
        await store.insert("job", [{"jobcode": code, "jobdesc": jobdesc.strip() or None}])
        await store.commit()
    except SQLAlchemyError as exc:
        await store.rollback()
        log.error("job %s not created: %s", code, exc)
        notifier.error("Failed to add job", error_text(exc))
        return RedirectResponse("/jobs", status_code=302)

    notifier.success("Job Added", f"Job {code} has been added")
    return RedirectResponse("/jobs", status_code=302)


@router.post("/{jobcode}/edit")
async def update_job(
    request: Request,
    jobcode: str,
    jobdesc: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    notifier = SessionNotifier(request.session)
    store = Persistence(db)
    try:
        updated = await store.update("job", {"jobcode": jobcode}, {"jobdesc": jobdesc.strip() or None})
        await store.commit()
    except SQLAlchemyError as exc:
        await store.rollback()
        log.error("job %s not updated: %s", jobcode, exc)
        notifier.error("Failed to update job", error_text(exc))
        return RedirectResponse("/jobs", status_code=302)

    if not updated:
        notifier.error("Failed to update job", f"Job {jobcode} not found")
    else:
        notifier.success("Job Updated", f"Job {jobcode} has been updated")
    return RedirectResponse("/jobs", status_code=302)


@router.post("/{jobcode}/delete")
async def delete_job(request: Request, jobcode: str, db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    notifier = SessionNotifier(request.session)
    store = Persistence(db)
    try:
        await store.delete("job", {"jobcode": jobcode})
        await store.commit()
    except SQLAlchemyError as exc:
        # still referenced by job history rows
        await store.rollback()
        log.error("job %s not deleted: %s", jobcode, exc)
        notifier.error("Failed to delete job", error_text(exc))
        return RedirectResponse("/jobs", status_code=302)

    notifier.success("Job deleted", "The job position has been deleted successfully.")
    return RedirectResponse("/jobs", status_code=302)
