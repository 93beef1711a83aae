from datetime import date
from typing import Optional

from sqlalchemy import String, Date
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_console.db.base import Base


class Employee(Base):
    __tablename__ = "employee"

    empno: Mapped[str] = mapped_column(String(20), primary_key=True)
    firstname: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    lastname: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    gender: Mapped[Optional[str]] = mapped_column(String(1), nullable=True)

    birthdate: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    hiredate: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    sepdate: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    histories = relationship(
        "JobHistory",
        back_populates="employee",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
