from typing import Any, Dict, Optional

from app.models.audit_log import AuditLog
from app.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository):
    """Writes rows to the append-only ``audit_logs`` table."""

    async def record(
        self,
        org_id: str,
        action: str,
        module: str,
        actor_type: str,
        actor_id: Optional[str] = None,
        record_id: Optional[str] = None,
        previous_state: Optional[Dict[str, Any]] = None,
        new_state: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        entry = AuditLog(
            org_id=org_id,
            action=action,
            module=module,
            record_id=record_id,
            actor_type=actor_type,
            actor_id=actor_id,
            previous_state=previous_state,
            new_state=new_state,
            extra=metadata,
        )
        self._db.add(entry)
        return entry
