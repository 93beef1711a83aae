import math
from contextlib import contextmanager
from datetime import date
from typing import Callable, Iterable, Optional

from hr_console.core.config import settings
from hr_console.core.logging import get_logger
from hr_console.staging.entry import JobHistoryEntry
from hr_console.staging.errors import NotFound, StagingBusy, ValidationError

log = get_logger(__name__)

OnChange = Callable[[list[JobHistoryEntry]], None]


class _LocalIds:
    """Monotonic id source shared by every staging list in the process."""

    def __init__(self):
        self._last = 0

    def next(self) -> int:
        self._last += 1
        return self._last

    def advance_past(self, local_id: int) -> None:
        # lists rebuilt from a saved form may carry ids from an earlier process
        if local_id > self._last:
            self._last = local_id


_local_ids = _LocalIds()


def next_local_id() -> int:
    return _local_ids.next()


class StagingList:
    """Ordered, not-yet-committed job-history entries of one employee.

    ``add``, ``edit`` and ``remove`` validate first and mutate second, so a
    call that raises leaves the list untouched. After every successful
    mutation the owner's ``on_change`` receives the full sequence. ``seed``
    is initialisation and does not notify.
    """

    def __init__(
        self,
        on_change: Optional[OnChange] = None,
        min_effective_date: Optional[date] = None,
        max_effective_date: Optional[date] = None,
    ):
        self._entries: list[JobHistoryEntry] = []
        self._on_change = on_change
        self.min_effective_date = min_effective_date or settings.MIN_EFFECTIVE_DATE
        self.max_effective_date = max_effective_date
        self._busy = False

    @classmethod
    def for_new_employee(cls, on_change: Optional[OnChange] = None) -> "StagingList":
        # create flow: nothing dated after today
        return cls(on_change=on_change, max_effective_date=date.today())

    @property
    def entries(self) -> list[JobHistoryEntry]:
        return list(self._entries)

    @property
    def busy(self) -> bool:
        return self._busy

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))

    def _validate(self, entry: JobHistoryEntry) -> None:
        if not entry.job_code:
            raise ValidationError("job_code")
        if not entry.department_code:
            raise ValidationError("department_code")
        if entry.effective_date is None:
            raise ValidationError("effective_date")
        if entry.salary is not None and (not math.isfinite(entry.salary) or entry.salary < 0):
            raise ValidationError("salary", "salary must be a non-negative amount")
        if entry.effective_date < self.min_effective_date:
            raise ValidationError(
                "effective_date",
                f"effective_date must not be before {self.min_effective_date.isoformat()}",
            )
        if self.max_effective_date is not None and entry.effective_date > self.max_effective_date:
            raise ValidationError(
                "effective_date",
                f"effective_date must not be after {self.max_effective_date.isoformat()}",
            )

    def _check_idle(self) -> None:
        if self._busy:
            raise StagingBusy()

    def _index_of(self, local_id: int) -> int:
        for i, e in enumerate(self._entries):
            if e.local_id == local_id:
                return i
        raise NotFound(local_id)

    def _changed(self) -> list[JobHistoryEntry]:
        snapshot = self.entries
        if self._on_change is not None:
            self._on_change(snapshot)
        return snapshot

    def add(self, entry: JobHistoryEntry) -> list[JobHistoryEntry]:
        self._check_idle()
        try:
            self._validate(entry)
        except ValidationError as exc:
            log.debug("rejected staged entry: %s", exc)
            raise
        self._entries.append(entry.with_local_id(next_local_id()))
        return self._changed()

    def edit(self, local_id: int, entry: JobHistoryEntry) -> list[JobHistoryEntry]:
        self._check_idle()
        self._validate(entry)
        i = self._index_of(local_id)
        self._entries[i] = entry.with_local_id(local_id)
        return self._changed()

    def remove(self, local_id: int) -> list[JobHistoryEntry]:
        self._check_idle()
        i = self._index_of(local_id)
        del self._entries[i]
        return self._changed()

    def check(self) -> None:
        """Validate every entry, including seeded ones that skipped it on the way in."""
        for e in self._entries:
            self._validate(e)

    def seed(self, entries: Iterable[JobHistoryEntry]) -> list[JobHistoryEntry]:
        """Replace the whole sequence without notifying the owner.

        Entries that already carry a local id keep it (a list rebuilt from
        a saved form); the rest get a fresh one.
        """
        entries = list(entries)
        for e in entries:
            if e.local_id is not None:
                _local_ids.advance_past(e.local_id)
        self._entries = [
            e if e.local_id is not None else e.with_local_id(next_local_id())
            for e in entries
        ]
        return self.entries

    @contextmanager
    def committing(self):
        """Hold the list read-only while a commit is outstanding."""
        self._check_idle()
        self._busy = True
        try:
            yield self.entries
        finally:
            self._busy = False
