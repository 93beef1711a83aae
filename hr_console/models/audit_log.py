from datetime import datetime
from typing import Optional, Any

from sqlalchemy import String, ForeignKey, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hr_console.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)

    actor_user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    action: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    entity: Mapped[Optional[str]] = mapped_column(String(80), nullable=True)
    # employee numbers and composite history keys are strings
    entity_key: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    meta: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    actor = relationship("User", foreign_keys=[actor_user_id])
