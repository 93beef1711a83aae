from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from hr_console.db.base import Base


class Department(Base):
    __tablename__ = "department"

    deptcode: Mapped[str] = mapped_column(String(20), primary_key=True)
    deptname: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)
