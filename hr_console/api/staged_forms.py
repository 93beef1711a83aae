import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, MutableMapping, Optional

from fastapi import HTTPException
from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from hr_console.core.config import settings
from hr_console.core.logging import get_logger
from hr_console.core.notify import Notifier
from hr_console.db.persistence import Persistence
from hr_console.models.staged_form import StagedForm
from hr_console.staging.entry import JobHistoryEntry
from hr_console.staging.errors import DataUnavailable, NotFound, StagingBusy, ValidationError
from hr_console.staging.reference import ReferenceDataCache
from hr_console.staging.staging_list import StagingList

log = get_logger(__name__)

# the only staging data the session cookie carries
STAGING_TOKEN = "staging_token"

NEW_EMPLOYEE_FORM = "new-employee"


def history_form_key(empno: str) -> str:
    return f"history:{empno}"


def staging_token(session: MutableMapping[str, Any]) -> str:
    token = session.get(STAGING_TOKEN)
    if not token:
        token = secrets.token_urlsafe(24)
        session[STAGING_TOKEN] = token
    return token


async def discard_all_forms(db: AsyncSession, session: MutableMapping[str, Any]) -> None:
    token = session.get(STAGING_TOKEN)
    if not token:
        return
    await db.execute(delete(StagedForm).where(StagedForm.token == token))
    await db.commit()


class StagingForm:
    """A form whose staging list survives between requests.

    Entries and typed fields are kept server-side in ``staged_forms``, keyed
    by a random token in the session, so the cookie stays the same size no
    matter how much history is staged. The form owns its staging list: the
    list's ``on_change`` updates the form state, and ``save()`` writes it
    back before the response goes out.
    """

    def __init__(
        self,
        db: AsyncSession,
        token: str,
        key: str,
        state: Optional[dict[str, Any]],
        create_flow: bool = False,
    ):
        self.db = db
        self.token = token
        self.key = key
        self.create_flow = create_flow
        self._state = state
        self._dirty = False

    @classmethod
    async def fetch(
        cls,
        session: MutableMapping[str, Any],
        db: AsyncSession,
        key: str,
        create_flow: bool = False,
    ) -> "StagingForm":
        token = staging_token(session)
        res = await db.execute(
            select(StagedForm.payload).where(StagedForm.token == token, StagedForm.form_key == key)
        )
        return cls(db, token, key, res.scalar_one_or_none(), create_flow=create_flow)

    @property
    def is_open(self) -> bool:
        return self._state is not None

    @property
    def meta(self) -> dict[str, Any]:
        return dict((self._state or {}).get("meta", {}))

    def open(self, entries: Iterable[JobHistoryEntry] = (), **meta: Any) -> StagingList:
        staging = self._new_list()
        staging.seed(entries)
        self._state = {"meta": meta, "entries": [e.to_dict() for e in staging]}
        self._dirty = True
        return staging

    def load(self) -> StagingList:
        staging = self._new_list()
        staging.seed(JobHistoryEntry.from_dict(d) for d in (self._state or {}).get("entries", []))
        return staging

    def remember(self, **meta: Any) -> None:
        state = dict(self._state or {"entries": []})
        state["meta"] = {**state.get("meta", {}), **meta}
        self._state = state
        self._dirty = True

    def discard(self) -> None:
        self._state = None
        self._dirty = True

    async def save(self) -> None:
        """Persist pending changes and purge forms left open past their TTL."""
        if not self._dirty:
            return

        now = datetime.now(timezone.utc)
        await self.db.execute(
            delete(StagedForm).where(StagedForm.token == self.token, StagedForm.form_key == self.key)
        )
        if self._state is not None:
            await self.db.execute(
                insert(StagedForm).values(
                    token=self.token,
                    form_key=self.key,
                    payload=self._state,
                    updated_at=now,
                )
            )
        expired = await self.db.execute(
            delete(StagedForm).where(
                StagedForm.updated_at < now - timedelta(hours=settings.STAGED_FORM_TTL_HOURS)
            )
        )
        await self.db.commit()
        if expired.rowcount:
            log.info("purged %d abandoned staging forms", expired.rowcount)
        self._dirty = False

    def _store(self, entries: list[JobHistoryEntry]) -> None:
        state = dict(self._state or {"meta": {}})
        state["entries"] = [e.to_dict() for e in entries]
        self._state = state
        self._dirty = True

    def _new_list(self) -> StagingList:
        if self.create_flow:
            return StagingList.for_new_employee(on_change=self._store)
        return StagingList(on_change=self._store)


VALIDATION_TITLES = {
    "job_code": "Missing job",
    "department_code": "Missing department",
    "effective_date": "Invalid effective date",
    "salary": "Invalid salary",
}


def apply_staged_edit(notifier: Notifier, edit: Callable[[], Any]) -> bool:
    """Run one add/edit/remove against a staging list for a web request.

    Validation problems become inline notifications; a stale local id is a
    broken page, not a user error, so it is answered with 404.
    """
    try:
        edit()
    except ValidationError as exc:
        notifier.error(VALIDATION_TITLES.get(exc.field, "Invalid job history"), str(exc))
        return False
    except StagingBusy as exc:
        notifier.error("Job history busy", str(exc))
        return False
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return True


async def load_reference(store: Persistence, notifier: Notifier) -> ReferenceDataCache:
    """Reference data for a form page; an unloaded cache disables entry creation."""
    try:
        return await ReferenceDataCache().load(store)
    except DataUnavailable as exc:
        await store.rollback()
        notifier.error("Error fetching data", str(exc))
        return ReferenceDataCache()
