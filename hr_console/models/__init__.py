from hr_console.models.audit_log import AuditLog
from hr_console.models.department import Department
from hr_console.models.employee import Employee
from hr_console.models.job import Job
from hr_console.models.job_history import JobHistory
from hr_console.models.staged_form import StagedForm
from hr_console.models.user import User
from hr_console.models.user_role import UserRole

__all__ = [
    "AuditLog",
    "Department",
    "Employee",
    "Job",
    "JobHistory",
    "StagedForm",
    "User",
    "UserRole",
]
