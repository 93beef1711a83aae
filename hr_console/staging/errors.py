from enum import Enum

from hr_console.core.notify import error_text


class StagingError(Exception):
    """Base class for job-history staging and commit errors."""


class ValidationError(StagingError):
    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"{field} is required")


class NotFound(StagingError):
    def __init__(self, local_id: int):
        self.local_id = local_id
        super().__init__(f"no staged job history entry with id {local_id}")


class StagingBusy(StagingError):
    def __init__(self):
        super().__init__("job history is being saved; try again when the save completes")


class DataUnavailable(StagingError):
    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(error_text(cause))


class CommitStage(str, Enum):
    EMPLOYEE_WRITE = "employee_write"
    DELETE_OLD_HISTORY = "delete_old_history"
    INSERT_NEW_HISTORY = "insert_new_history"


class CommitFailure(StagingError):
    def __init__(self, stage: CommitStage, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(error_text(cause))
