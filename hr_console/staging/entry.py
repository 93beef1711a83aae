from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from hr_console.staging.errors import ValidationError


@dataclass(frozen=True)
class JobHistoryEntry:
    """One pending job-history row for the employee a staging list belongs to.

    ``local_id`` keys the entry inside its staging list only and is never
    written to storage; persisted rows are keyed by (empno, jobcode, effdate).
    """

    job_code: str
    department_code: str
    effective_date: Optional[date]
    salary: Optional[float] = None
    local_id: Optional[int] = None

    def with_local_id(self, local_id: int) -> "JobHistoryEntry":
        return replace(self, local_id=local_id)

    def same_values(self, other: "JobHistoryEntry") -> bool:
        return (
            self.job_code == other.job_code
            and self.department_code == other.department_code
            and self.effective_date == other.effective_date
            and self.salary == other.salary
        )

    # --- storage rows ---

    def to_row(self, empno: str) -> dict[str, Any]:
        return {
            "empno": empno,
            "jobcode": self.job_code,
            "deptcode": self.department_code,
            "effdate": self.effective_date,
            "salary": self.salary,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "JobHistoryEntry":
        salary = row.get("salary")
        return cls(
            job_code=row["jobcode"],
            department_code=row.get("deptcode") or "",
            effective_date=row["effdate"],
            salary=float(salary) if salary is not None else None,
        )

    # --- staged form payloads ---

    def to_dict(self) -> dict[str, Any]:
        return {
            "local_id": self.local_id,
            "job_code": self.job_code,
            "department_code": self.department_code,
            "effective_date": self.effective_date.isoformat() if self.effective_date else None,
            "salary": self.salary,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "JobHistoryEntry":
        eff = data.get("effective_date")
        return cls(
            job_code=data.get("job_code") or "",
            department_code=data.get("department_code") or "",
            effective_date=date.fromisoformat(eff) if eff else None,
            salary=data.get("salary"),
            local_id=data.get("local_id"),
        )


def parse_entry(job_code: str, department_code: str, effective_date: str, salary: str) -> JobHistoryEntry:
    """Build an entry from raw form strings.

    Blank fields become empty/None so the staging list reports them as
    missing; only malformed (non-blank) dates and salaries are rejected here.
    """
    eff = None
    if effective_date and effective_date.strip():
        try:
            eff = date.fromisoformat(effective_date.strip())
        except ValueError:
            raise ValidationError("effective_date", "effective_date is not a valid date") from None

    amount = None
    if salary and salary.strip():
        try:
            amount = float(Decimal(salary.strip()))
        except (InvalidOperation, ValueError):
            # ValueError: signaling NaN has no float form
            raise ValidationError("salary", "salary must be a number") from None

    return JobHistoryEntry(
        job_code=(job_code or "").strip(),
        department_code=(department_code or "").strip(),
        effective_date=eff,
        salary=amount,
    )
