from datetime import datetime
from typing import Any

from sqlalchemy import String, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from hr_console.db.base import Base


class StagedForm(Base):
    """Server-side state of one open staging form.

    The browser only carries ``token`` in its session cookie; entries and
    typed fields stay here until the form is saved or closed.
    """

    __tablename__ = "staged_forms"
    __table_args__ = (UniqueConstraint("token", "form_key", name="uq_staged_form_token_key"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    token: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    form_key: Mapped[str] = mapped_column(String(120), nullable=False)

    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
