from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from hr_console.models.audit_log import AuditLog


async def log_event(
    db: AsyncSession,
    actor_user_id: Optional[int],
    action: str,
    entity: Optional[str] = None,
    entity_key: Optional[str] = None,
    meta: Optional[dict[str, Any]] = None,
):
    db.add(
        AuditLog(
            actor_user_id=actor_user_id,
            action=action,
            entity=entity,
            entity_key=entity_key,
            meta=meta,
            created_at=datetime.now(timezone.utc),
        )
    )
    # no commit here: the event rides on the caller's transaction
