from hr_console.core.config import settings
from hr_console.db.persistence import Persistence


async def next_employee_number(persistence: Persistence) -> str:
    """Suggest the number for a new employee: highest numeric empno + 1.

    This is a read-then-increment with no reservation; two forms opened at
    the same time get the same suggestion and the second save fails on the
    primary key.
    """
    rows = await persistence.select_all("employee")
    numbers = [int(r["empno"]) for r in rows if str(r["empno"]).isdigit()]
    if not numbers:
        return str(settings.FIRST_EMPLOYEE_NUMBER)
    return str(max(numbers) + 1)
