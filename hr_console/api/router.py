from fastapi import APIRouter

from hr_console.api.endpoints import auth, dashboard, departments, employees, jobs, job_histories

router = APIRouter()
router.include_router(auth.router)
router.include_router(dashboard.router)

router.include_router(departments.router, prefix="/departments", tags=["departments"])
router.include_router(jobs.router, prefix="/jobs", tags=["jobs"])

# employees first: its literal /employees/new/... routes must win over /employees/{empno}/...
router.include_router(employees.router, prefix="/employees", tags=["employees"])
router.include_router(job_histories.router, tags=["job history"])
