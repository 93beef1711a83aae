from fastapi import APIRouter, Depends, HTTPException, Request, Form
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from hr_console.api.endpoints.auth import require_login
from hr_console.api.staged_forms import (
    StagingForm,
    apply_staged_edit,
    history_form_key,
    load_reference,
)
from hr_console.api.templating import matches, render
from hr_console.core.notify import SessionNotifier
from hr_console.db.persistence import Persistence
from hr_console.db.session import get_db
from hr_console.staging.commit import commit_replace_history
from hr_console.staging.entry import JobHistoryEntry, parse_entry
from hr_console.staging.reference import ReferenceKind

router = APIRouter()


@router.get("/jobhistories")
async def list_job_histories(request: Request, q: str = "", db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    store = Persistence(db)
    rows = await store.select_all("jobhistory", order_by="effdate", descending=True)
    employees = {
        e["empno"]: f"{e['firstname'] or ''} {e['lastname'] or ''}".strip()
        for e in await store.select_all("employee")
    }
    ref = await load_reference(store, SessionNotifier(request.session))

    items = []
    for r in rows:
        item = {
            **r,
            "employee_name": employees.get(r["empno"], ""),
            "job_desc": ref.describe(ReferenceKind.JOB, r["jobcode"]),
            "dept_name": ref.describe(ReferenceKind.DEPARTMENT, r["deptcode"]) if r["deptcode"] else "",
        }
        if matches(q, item["empno"], item["employee_name"], item["job_desc"], item["dept_name"]):
            items.append(item)

    return render(request, "jobhistories.html", {"items": items, "q": q})


# --- per-employee history dialog (replace-all on save) ---


async def _employee_or_404(store: Persistence, empno: str) -> dict:
    rows = await store.select_where("employee", {"empno": empno})
    if not rows:
        raise HTTPException(status_code=404, detail="Employee not found")
    return rows[0]


def _history_url(empno: str) -> str:
    return f"/employees/{empno}/history"


@router.get("/employees/{empno}/history")
async def history_dialog(
    request: Request,
    empno: str,
    reload: bool = False,
    db: AsyncSession = Depends(get_db),
):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    store = Persistence(db)
    employee = await _employee_or_404(store, empno)
    notifier = SessionNotifier(request.session)
    form = await StagingForm.fetch(request.session, db, history_form_key(empno))

    if reload or not form.is_open:
        persisted = await store.select_where("jobhistory", {"empno": empno}, order_by="effdate", descending=True)
        form.open(JobHistoryEntry.from_row(r) for r in persisted)

    staging = form.load()
    ref = await load_reference(store, notifier)
    await form.save()
    return render(
        request,
        "job_history_dialog.html",
        {
            "employee": employee,
            "entries": staging.entries,
            "ref": ref,
            "can_stage": ref.loaded,
            "min_date": staging.min_effective_date,
        },
    )


@router.post("/employees/{empno}/history/add")
async def stage_history(
    request: Request,
    empno: str,
    job_code: str = Form(""),
    department_code: str = Form(""),
    effective_date: str = Form(""),
    salary: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    form = await StagingForm.fetch(request.session, db, history_form_key(empno))
    if not form.is_open:
        return RedirectResponse(_history_url(empno), status_code=302)

    staging = form.load()
    apply_staged_edit(
        SessionNotifier(request.session),
        lambda: staging.add(parse_entry(job_code, department_code, effective_date, salary)),
    )
    await form.save()
    return RedirectResponse(_history_url(empno), status_code=302)


@router.post("/employees/{empno}/history/{local_id}/edit")
async def edit_history(
    request: Request,
    empno: str,
    local_id: int,
    job_code: str = Form(""),
    department_code: str = Form(""),
    effective_date: str = Form(""),
    salary: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    form = await StagingForm.fetch(request.session, db, history_form_key(empno))
    if not form.is_open:
        return RedirectResponse(_history_url(empno), status_code=302)

    staging = form.load()
    apply_staged_edit(
        SessionNotifier(request.session),
        lambda: staging.edit(local_id, parse_entry(job_code, department_code, effective_date, salary)),
    )
    await form.save()
    return RedirectResponse(_history_url(empno), status_code=302)


@router.post("/employees/{empno}/history/{local_id}/remove")
async def remove_history(request: Request, empno: str, local_id: int, db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    form = await StagingForm.fetch(request.session, db, history_form_key(empno))
    if not form.is_open:
        return RedirectResponse(_history_url(empno), status_code=302)

    staging = form.load()
    apply_staged_edit(SessionNotifier(request.session), lambda: staging.remove(local_id))
    await form.save()
    return RedirectResponse(_history_url(empno), status_code=302)


@router.post("/employees/{empno}/history/cancel")
async def cancel_history(request: Request, empno: str, db: AsyncSession = Depends(get_db)):
    form = await StagingForm.fetch(request.session, db, history_form_key(empno))
    form.discard()
    await form.save()
    return RedirectResponse(f"/employees/{empno}", status_code=302)


@router.post("/employees/{empno}/history/save")
async def save_history(request: Request, empno: str, db: AsyncSession = Depends(get_db)):
    if not require_login(request):
        return RedirectResponse("/login", status_code=302)

    store = Persistence(db)
    await _employee_or_404(store, empno)

    form = await StagingForm.fetch(request.session, db, history_form_key(empno))
    if not form.is_open:
        return RedirectResponse(_history_url(empno), status_code=302)

    result = await commit_replace_history(
        store,
        empno,
        form.load(),
        SessionNotifier(request.session),
        actor_user_id=request.session.get("user_id"),
    )
    if not result.ok:
        # staged entries are kept for another try
        return RedirectResponse(_history_url(empno), status_code=302)

    form.discard()
    await form.save()
    return RedirectResponse(f"/employees/{empno}", status_code=302)
