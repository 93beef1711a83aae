from datetime import date
from typing import Optional

from sqlalchemy import String, Date, ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_console.db.base import Base


class JobHistory(Base):
    __tablename__ = "jobhistory"

    # composite key: one row per (employee, job, effective date)
    empno: Mapped[str] = mapped_column(
        ForeignKey("employee.empno", ondelete="CASCADE"),
        primary_key=True,
    )
    jobcode: Mapped[str] = mapped_column(ForeignKey("job.jobcode"), primary_key=True)
    effdate: Mapped[date] = mapped_column(Date, primary_key=True)

    deptcode: Mapped[Optional[str]] = mapped_column(ForeignKey("department.deptcode"), nullable=True)
    salary: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)

    employee = relationship("Employee", back_populates="histories")
    job = relationship("Job")
    department = relationship("Department")
