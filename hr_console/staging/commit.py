"""Flushing a staging list to storage.

Two policies, both all-or-nothing inside one database transaction:

* additive: a brand-new employee row, then every staged entry as new
  history rows for that employee;
* replace-all: drop every persisted history row of an existing employee,
  then insert every staged entry. No diffing.

Entries are written in staging-list order. Every entry is validated again
before anything is written: entries seeded from storage never went through
``add``. On failure the transaction is rolled back, the staging list is left
exactly as it was and the caller gets a ``CommitResult`` carrying either the
``ValidationError`` or a ``CommitFailure`` that names the stage.
"""
from dataclasses import dataclass, field
from typing import Any, Awaitable, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from hr_console.core.audit import log_event
from hr_console.core.logging import get_logger
from hr_console.core.notify import Notifier
from hr_console.db.persistence import Persistence
from hr_console.staging.entry import JobHistoryEntry
from hr_console.staging.errors import CommitFailure, CommitStage, StagingError, ValidationError
from hr_console.staging.staging_list import StagingList

log = get_logger(__name__)


@dataclass
class CommitResult:
    ok: bool
    error: Optional[StagingError] = None
    written: list[JobHistoryEntry] = field(default_factory=list)


async def _stage(stage: CommitStage, step: Awaitable[Any]) -> Any:
    try:
        return await step
    except SQLAlchemyError as exc:
        raise CommitFailure(stage, exc) from exc


async def commit_new_employee(
    persistence: Persistence,
    employee: Mapping[str, Any],
    staging: StagingList,
    notifier: Notifier,
    actor_user_id: Optional[int] = None,
) -> CommitResult:
    empno = employee["empno"]

    with staging.committing() as entries:
        try:
            staging.check()
        except ValidationError as exc:
            log.warning("employee %s not created: staged %s", empno, exc)
            notifier.error("Failed to add employee", str(exc))
            return CommitResult(ok=False, error=exc)

        rows = [e.to_row(empno) for e in entries]
        try:
            await _stage(CommitStage.EMPLOYEE_WRITE, persistence.insert("employee", [employee]))
            await _stage(CommitStage.INSERT_NEW_HISTORY, persistence.insert("jobhistory", rows))

            await log_event(
                persistence.db,
                actor_user_id=actor_user_id,
                action="employee.create",
                entity="employee",
                entity_key=empno,
                meta={"job_histories": len(rows)},
            )
            await _stage(CommitStage.INSERT_NEW_HISTORY, persistence.commit())
        except CommitFailure as failure:
            await persistence.rollback()
            log.error("employee %s not created (%s): %s", empno, failure.stage.value, failure)
            notifier.error("Failed to add employee", str(failure))
            return CommitResult(ok=False, error=failure)

    staging.seed([])
    log.info("employee %s created with %d job history rows", empno, len(rows))
    notifier.success("Employee Added", "Employee has been successfully added")
    return CommitResult(ok=True, written=entries)


async def commit_replace_history(
    persistence: Persistence,
    empno: str,
    staging: StagingList,
    notifier: Notifier,
    actor_user_id: Optional[int] = None,
) -> CommitResult:
    with staging.committing() as entries:
        try:
            staging.check()
        except ValidationError as exc:
            log.warning("job history of %s not saved: staged %s", empno, exc)
            notifier.error("Failed to save job history", str(exc))
            return CommitResult(ok=False, error=exc)

        rows = [e.to_row(empno) for e in entries]
        try:
            removed = await _stage(
                CommitStage.DELETE_OLD_HISTORY,
                persistence.delete("jobhistory", {"empno": empno}),
            )
            await _stage(CommitStage.INSERT_NEW_HISTORY, persistence.insert("jobhistory", rows))

            await log_event(
                persistence.db,
                actor_user_id=actor_user_id,
                action="jobhistory.replace",
                entity="employee",
                entity_key=empno,
                meta={"removed": removed, "inserted": len(rows)},
            )
            await _stage(CommitStage.INSERT_NEW_HISTORY, persistence.commit())
        except CommitFailure as failure:
            await persistence.rollback()
            log.error("job history of %s not saved (%s): %s", empno, failure.stage.value, failure)
            notifier.error("Failed to save job history", str(failure))
            return CommitResult(ok=False, error=failure)

    staging.seed(entries)
    log.info("job history of %s replaced: %d removed, %d inserted", empno, removed, len(rows))
    notifier.success("Job History Saved", f"{len(rows)} job history record(s) saved")
    return CommitResult(ok=True, written=entries)
