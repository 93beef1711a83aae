from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from hr_console.db.base import Base


class Job(Base):
    __tablename__ = "job"

    jobcode: Mapped[str] = mapped_column(String(20), primary_key=True)
    jobdesc: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)
