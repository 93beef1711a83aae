from hr_console.staging.entry import JobHistoryEntry
from hr_console.staging.errors import (
    CommitFailure,
    CommitStage,
    DataUnavailable,
    NotFound,
    StagingBusy,
    StagingError,
    ValidationError,
)
from hr_console.staging.reference import ReferenceDataCache, ReferenceKind
from hr_console.staging.staging_list import StagingList
from hr_console.staging.commit import CommitResult, commit_new_employee, commit_replace_history

__all__ = [
    "CommitFailure",
    "CommitResult",
    "CommitStage",
    "DataUnavailable",
    "JobHistoryEntry",
    "NotFound",
    "ReferenceDataCache",
    "ReferenceKind",
    "StagingBusy",
    "StagingError",
    "StagingList",
    "ValidationError",
    "commit_new_employee",
    "commit_replace_history",
]
