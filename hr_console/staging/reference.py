from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from hr_console.core.logging import get_logger
from hr_console.db.persistence import Persistence
from hr_console.staging.errors import DataUnavailable

log = get_logger(__name__)


class ReferenceKind(str, Enum):
    JOB = "job"
    DEPARTMENT = "department"


class ReferenceDataCache:
    """Job and department labels for one form session.

    Loaded once, read many times; never written back.
    """

    def __init__(self):
        self._labels: dict[ReferenceKind, dict[str, str | None]] = {
            ReferenceKind.JOB: {},
            ReferenceKind.DEPARTMENT: {},
        }
        self.loaded = False

    async def load(self, persistence: Persistence) -> "ReferenceDataCache":
        try:
            jobs = await persistence.select_all("job")
            departments = await persistence.select_all("department")
        except SQLAlchemyError as exc:
            log.warning("reference data load failed: %s", exc)
            raise DataUnavailable(exc) from exc

        self._labels = {
            ReferenceKind.JOB: {r["jobcode"]: r["jobdesc"] for r in jobs},
            ReferenceKind.DEPARTMENT: {r["deptcode"]: r["deptname"] for r in departments},
        }
        self.loaded = True
        return self

    def describe(self, kind: ReferenceKind | str, code: str) -> str:
        label = self._labels[ReferenceKind(kind)].get(code)
        return label or code

    def _choices(self, kind: ReferenceKind) -> list[tuple[str, str]]:
        return sorted(
            ((code, label or code) for code, label in self._labels[kind].items()),
            key=lambda pair: pair[1].lower(),
        )

    def jobs(self) -> list[tuple[str, str]]:
        return self._choices(ReferenceKind.JOB)

    def departments(self) -> list[tuple[str, str]]:
        return self._choices(ReferenceKind.DEPARTMENT)
