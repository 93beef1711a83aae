from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request, Form
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from hr_console.api.endpoints.auth import require_login
from hr_console.api.staged_forms import (
    NEW_EMPLOYEE_FORM,
    StagingForm,
    apply_staged_edit,
    load_reference,
)
from hr_console.api.templating import matches, render
from hr_console.core.logging import get_logger
from hr_console.core.notify import SessionNotifier, error_text
from hr_console.core.rbac import user_is_admin
from hr_console.db.persistence import Persistence
from hr_console.db.session import get_db
from hr_console.staging.commit import commit_new_employee
from hr_console.staging.entry import JobHistoryEntry, parse_entry
from hr_console.staging.numbering import next_employee_number

router = APIRouter()
log = get_logger(__name__)

GENDERS = {"M", "F", "O"}
EMPLOYEE_FIELDS = ("empno", "firstname", "lastname", "gender", "birthdate", "hiredate", "sepdate")


def _parse_date(value: str) -> date | None:
    value = (value or "").strip()
    return date.fromisoformat(value) if value else None


def _employee_row(fields: dict[str, str]) -> dict:
    """Form strings -> employee row. Raises ValueError with a user-facing message."""
    gender = (fields.get("gender") or "").strip().upper() or None
    if gender is not None and gender not in GENDERS:
        raise ValueError("Gender must be M, F or O")

    try:
        birthdate = _parse_date(fields.get("birthdate", ""))
        hiredate = _parse_date(fields.get("hiredate", ""))
        sepdate = _parse_date(fields.get("sepdate", ""))
    except ValueError:
        raise ValueError("Dates must be in YYYY-MM-DD format") from None

    if hiredate is None:
        raise ValueError("Hire date is required")

    return {
        "firstname": (fields.get("firstname") or "").strip() or None,
        "lastname": (fields.get("lastname") or "").strip() or None,
        "gender": gender,
        "birthdate": birthdate,
        "hiredate": hiredate,
        "sepdate": sepdate,
    }


@router.get("")
async def list_employees(request: Request, q: str = "", db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    rows = await Persistence(db).select_all("employee", order_by="empno")
    items = [r for r in rows if matches(q, r["empno"], r["firstname"], r["lastname"])]
    return render(
        request,
        "employees.html",
        {
            "items": items,
            "q": q,
            "is_admin": await user_is_admin(db, require_login(request)),
        },
    )


# --- new employee form with staged job history ---


@router.get("/new")
async def new_employee_form(request: Request, db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    store = Persistence(db)
    notifier = SessionNotifier(request.session)
    form = await StagingForm.fetch(request.session, db, NEW_EMPLOYEE_FORM, create_flow=True)

    # reopening after a failed save keeps what was typed
    if not form.is_open:
        try:
            empno = await next_employee_number(store)
        except SQLAlchemyError as exc:
            await store.rollback()
            log.error("next employee number unavailable: %s", exc)
            notifier.error("Error", "Failed to generate employee number")
            empno = ""
        form.open(fields={"empno": empno})

    staging = form.load()
    ref = await load_reference(store, notifier)
    await form.save()
    return render(
        request,
        "employee_form.html",
        {
            "fields": form.meta.get("fields", {}),
            "entries": staging.entries,
            "ref": ref,
            "can_stage": ref.loaded,
            "max_date": staging.max_effective_date,
            "min_date": staging.min_effective_date,
        },
    )


@router.post("/new/history/add")
async def stage_new_history(
    request: Request,
    job_code: str = Form(""),
    department_code: str = Form(""),
    effective_date: str = Form(""),
    salary: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    form = await StagingForm.fetch(request.session, db, NEW_EMPLOYEE_FORM, create_flow=True)
    if not form.is_open:
        return RedirectResponse("/employees/new", status_code=302)

    staging = form.load()
    apply_staged_edit(
        SessionNotifier(request.session),
        lambda: staging.add(parse_entry(job_code, department_code, effective_date, salary)),
    )
    await form.save()
    return RedirectResponse("/employees/new", status_code=302)


@router.post("/new/history/{local_id}/edit")
async def edit_new_history(
    request: Request,
    local_id: int,
    job_code: str = Form(""),
    department_code: str = Form(""),
    effective_date: str = Form(""),
    salary: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    form = await StagingForm.fetch(request.session, db, NEW_EMPLOYEE_FORM, create_flow=True)
    if not form.is_open:
        return RedirectResponse("/employees/new", status_code=302)

    staging = form.load()
    apply_staged_edit(
        SessionNotifier(request.session),
        lambda: staging.edit(local_id, parse_entry(job_code, department_code, effective_date, salary)),
    )
    await form.save()
    return RedirectResponse("/employees/new", status_code=302)


@router.post("/new/history/{local_id}/remove")
async def remove_new_history(request: Request, local_id: int, db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    form = await StagingForm.fetch(request.session, db, NEW_EMPLOYEE_FORM, create_flow=True)
    if not form.is_open:
        return RedirectResponse("/employees/new", status_code=302)

    staging = form.load()
    apply_staged_edit(SessionNotifier(request.session), lambda: staging.remove(local_id))
    await form.save()
    return RedirectResponse("/employees/new", status_code=302)


@router.post("/new/cancel")
async def cancel_new_employee(request: Request, db: AsyncSession = Depends(get_db)):
    form = await StagingForm.fetch(request.session, db, NEW_EMPLOYEE_FORM)
    form.discard()
    await form.save()
    return RedirectResponse("/employees", status_code=302)


@router.post("/new")
async def create_employee(
    request: Request,
    empno: str = Form(""),
    firstname: str = Form(""),
    lastname: str = Form(""),
    gender: str = Form(""),
    birthdate: str = Form(""),
    hiredate: str = Form(""),
    sepdate: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    notifier = SessionNotifier(request.session)
    form = await StagingForm.fetch(request.session, db, NEW_EMPLOYEE_FORM, create_flow=True)
    if not form.is_open:
        form.open()

    fields = dict(zip(EMPLOYEE_FIELDS, (empno, firstname, lastname, gender, birthdate, hiredate, sepdate)))
    # keep typed values for the next render, whatever happens below
    form.remember(fields=fields)
    await form.save()

    empno = empno.strip()
    if not empno:
        notifier.error("Failed to add employee", "Employee number is required")
        return RedirectResponse("/employees/new", status_code=302)
    try:
        employee = {"empno": empno, **_employee_row(fields)}
    except ValueError as exc:
        notifier.error("Failed to add employee", str(exc))
        return RedirectResponse("/employees/new", status_code=302)

    staging = form.load()
    result = await commit_new_employee(
        Persistence(db),
        employee,
        staging,
        notifier,
        actor_user_id=request.session.get("user_id"),
    )
    if not result.ok:
        return RedirectResponse("/employees/new", status_code=302)

    form.discard()
    await form.save()
    return RedirectResponse(f"/employees/{empno}", status_code=302)


# --- existing employees ---


@router.get("/{empno}")
async def view_employee(request: Request, empno: str, db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    store = Persistence(db)
    rows = await store.select_where("employee", {"empno": empno})
    if not rows:
        raise HTTPException(status_code=404, detail="Employee not found")

    history = await store.select_where("jobhistory", {"empno": empno}, order_by="effdate", descending=True)
    ref = await load_reference(store, SessionNotifier(request.session))
    return render(
        request,
        "employee_view.html",
        {
            "employee": rows[0],
            "history": [JobHistoryEntry.from_row(r) for r in history],
            "ref": ref,
        },
    )


@router.post("/{empno}/edit")
async def update_employee(
    request: Request,
    empno: str,
    firstname: str = Form(""),
    lastname: str = Form(""),
    gender: str = Form(""),
    birthdate: str = Form(""),
    hiredate: str = Form(""),
    sepdate: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    notifier = SessionNotifier(request.session)
    fields = dict(zip(EMPLOYEE_FIELDS[1:], (firstname, lastname, gender, birthdate, hiredate, sepdate)))
    try:
        patch = _employee_row(fields)
    except ValueError as exc:
        notifier.error("Failed to update employee", str(exc))
        return RedirectResponse(f"/employees/{empno}", status_code=302)

    store = Persistence(db)
    try:
        updated = await store.update("employee", {"empno": empno}, patch)
        await store.commit()
    except SQLAlchemyError as exc:
        await store.rollback()
        log.error("employee %s not updated: %s", empno, exc)
        notifier.error("Failed to update employee", error_text(exc))
        return RedirectResponse(f"/employees/{empno}", status_code=302)

    if not updated:
        raise HTTPException(status_code=404, detail="Employee not found")

    notifier.success("Employee Updated", "Employee information has been successfully updated")
    return RedirectResponse(f"/employees/{empno}", status_code=302)


@router.post("/{empno}/delete")
async def delete_employee(request: Request, empno: str, db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    notifier = SessionNotifier(request.session)
    store = Persistence(db)
    try:
        # job history goes with it (ON DELETE CASCADE)
        await store.delete("employee", {"empno": empno})
        await store.commit()
    except SQLAlchemyError as exc:
        await store.rollback()
        log.error("employee %s not deleted: %s", empno, exc)
        notifier.error("Failed to delete employee", error_text(exc))
        return RedirectResponse("/employees", status_code=302)

    notifier.success("Employee deleted", "The employee has been deleted successfully.")
    return RedirectResponse("/employees", status_code=302)
